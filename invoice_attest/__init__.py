"""
Top-level package for the Attested Invoice Service.

This package exposes:
- The attestation record model and its canonical text codec
- PDF embedding and extraction of attestation records
- Chain-readiness gating and ledger registration
- Verification of third-party documents against the ledger
- CLI entrypoints
- HTTP API (FastAPI)
"""

__all__ = [
    "schema",
    "codec",
    "embedder",
    "extractor",
    "readiness",
    "issuer",
    "verifier",
]
