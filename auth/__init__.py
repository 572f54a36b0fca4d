"""auth/ -- Concrete strategies, user storage and FastAPI adapters for Gatehouse.

Layer rule: auth/ imports from core/ and third-party libraries.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
