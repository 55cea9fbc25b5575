"""
Services package.

Subpackages:
    storage   - storage interfaces, errors and the in-memory backend
    currency  - exchange-rate store and converter
    wallet    - cash wallet ledger
"""
