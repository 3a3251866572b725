"""マイクロサービス間で共有する土台 (プール、認証、ページネーション、エラー、ログ)。"""
