"""
Identity API (FastAPI)

HTTP API for wallet and repository verification and membership proofs:
- POST /auth/wallet/nonce | /auth/wallet/verify | /auth/wallet/link
- POST /auth/github/start | /auth/github/verify
- GET /merkle/root | /merkle/proof/{wallet}/{issueNumber} | /merkle/tree | /merkle/owner/{wallet}
- POST /merkle/verify
- GET /health - Health check

Usage:
    uvicorn api.app:app --reload
"""

__version__ = "0.1.0"
