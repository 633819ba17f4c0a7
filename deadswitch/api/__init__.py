"""HTTP surface for deadswitch (FastAPI)."""
