"""
FastAPI application for the attested invoice service.

Endpoints
---------
- GET /health
- POST /extract   (upload a PDF, returns the embedded record or an error code)
- POST /verify    (upload a PDF, returns the verification outcome)
- POST /embed     (canonical record JSON body, returns the PDF)
"""

from __future__ import annotations

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from ..codec import decode
from ..config import configure_logging, get_settings
from ..embedder import document_filename, embed
from ..errors import EmbedFailure, ExtractError
from ..extractor import extract_result
from ..ledger import HttpLedger, Ledger
from ..schema import ExtractionResult, VerificationOutcome
from ..verifier import AttestationVerifier

configure_logging(get_settings().log_level)

app = FastAPI(title="Attested Invoice Service", version="1.0.0")

# Basic CORS configuration (can be tightened in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_ledger() -> Ledger:
    return HttpLedger(get_settings())


@app.get("/health")
async def health() -> dict:
    """
    Simple health-check endpoint.
    """
    return {"status": "ok"}


@app.post("/extract", response_model=ExtractionResult)
async def extract_document(
    file: UploadFile = File(..., description="PDF invoice to read."),
) -> ExtractionResult:
    """
    Return the record embedded in an uploaded PDF, or the reason it has none.
    """
    content = await file.read()
    return extract_result(content)


@app.post("/verify", response_model=VerificationOutcome)
def verify_document(
    file: UploadFile = File(..., description="PDF invoice to verify."),
    ledger: Ledger = Depends(get_ledger),
) -> VerificationOutcome:
    """
    Check an uploaded PDF against the attestation ledger.
    """
    content = file.file.read()
    return AttestationVerifier(ledger).verify(content)


@app.post("/embed")
async def embed_record(request: Request) -> Response:
    """
    Render a registered record (canonical JSON body) as an attested PDF.
    """
    body = await request.body()
    try:
        record = decode(body)
    except ExtractError as e:
        raise HTTPException(status_code=422, detail={"code": e.code, "message": e.message})

    try:
        content = embed(record)
    except EmbedFailure as e:
        raise HTTPException(status_code=422, detail={"code": e.code, "message": e.message})

    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{document_filename(record)}"'},
    )


# For local development convenience:
#   uvicorn invoice_attest.api.main:app --reload
