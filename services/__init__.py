"""
服務層

這個 package 包含純轉換邏輯，不負責狀態轉換：
- BulkLoadService：管理員匯入資料驗證
- CsvService：CSV 匯入、匯出與範本
- SeedService：示範資料
"""
