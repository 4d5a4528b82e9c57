"""
Page Object 產生器 (Generator)

把掃描結果整理成 renderer 可用的 page object 描述：
元素 (DetectedElement)、方法合約 (MethodDescriptor)、run metadata。

用法:
    python -m generator https://example.com/home

產出是 JSON（PageObjectMap.to_dict()），轉成特定框架的程式碼
由外部 renderer 負責，這裡不寫任何檔案。
"""
