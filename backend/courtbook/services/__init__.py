"""
Services Layer

Pure business logic services that:
- Accept domain inputs (IDs, sessions, the acting Actor)
- Return domain outputs (models, dataclasses)
- Do NOT depend on HTTP request/response objects
- Raise BookingError subclasses; the HTTP layer maps them to status codes
"""
