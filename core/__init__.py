"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- Capacity Ledger：名額扣除
- Turn Engine：決定輪到誰、輪次轉換
- Selection Transaction：選校 / 放棄的原子操作
- Store / Sync：狀態儲存與客戶端同步
- Locks：並發控制工具
"""
