"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- State：唯一的記憶體狀態與 transactional 還原
- Manager：管理目錄、名單與投票回合的生命週期
- Events：狀態轉換後要廣播的事件
"""
