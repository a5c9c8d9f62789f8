"""Alpha Vantage transport (client, settings and bundled fixtures)."""
