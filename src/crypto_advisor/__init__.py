"""Session gate and data-sync layer for the crypto advisor dashboard."""
