"""CoinGecko v3 public API."""
