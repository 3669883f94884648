"""pricetable: live symbol -> price table served over SSE."""
