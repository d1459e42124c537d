"""roster/ -- Team randomization and per-account roster history.

Layer rule: roster/ may import from core/ and auth/. It does NOT import
from api/.
"""
