"""顧客ディレクトリサービス。"""
