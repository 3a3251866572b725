"""在庫・注文台帳サービス。"""
