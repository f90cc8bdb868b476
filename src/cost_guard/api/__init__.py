"""HTTP API over stored costs and alerts."""
