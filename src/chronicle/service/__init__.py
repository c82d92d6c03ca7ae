"""Remote entity service: protocol (base.py) and httpx client (http.py)."""
