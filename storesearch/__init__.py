"""iTunes Search API クライアント."""
