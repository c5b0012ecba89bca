"""WordPress.org plugin review scraper and competitor finder."""
