"""注文 Saga オーケストレーター。"""
