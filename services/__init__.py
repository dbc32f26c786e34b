"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- PollService：投票結算邏輯
- CatalogService：目錄整理與抽歌邏輯
- IdService：時間戳 ID 生成
"""
