"""alt テキスト・ファイル名テンプレート。"""
