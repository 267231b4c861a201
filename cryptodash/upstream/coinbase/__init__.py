"""Coinbase Exchange public candles API."""
