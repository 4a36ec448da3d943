"""
Core business logic components.

This package contains the sheet logging pipeline components:
- Private key decoding and RS256 assertion signing
- OAuth token exchange
- Sheets row append
- Request logger orchestration and background task tracking
- Metrics collection
"""
