"""
scanner：導航 + 頁面掃描

流程：
    Navigator 到達目標頁（必要時登入）→
    PageScanner 列出候選 node → classify() 判斷角色 →
    SelectorSynthesizer 產生唯一 selector → DetectedElement 清單

擴充功能：
    diff_elements：比對兩次掃描的新增 / 移除 / 變更元素
"""
