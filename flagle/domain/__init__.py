"""Domain layer (pure logic).

- Keep game rules and pixel calculations here.
- Avoid I/O: no DB sessions, no HTTP/FastAPI, no image decoding.
- Prefer deterministic functions (the current time is passed in as an argument).
"""
