"""core/ -- Framework-agnostic authentication orchestration kernel for Gatehouse.

Layer rule: core/ imports only stdlib + third-party libraries.
It does NOT import from auth/ or api/. Those layers import from core/.
"""
