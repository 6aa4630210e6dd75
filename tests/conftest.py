import pytest

from invoice_attest.config import Settings
from invoice_attest.ledger import InMemoryLedger
from invoice_attest.readiness import ChainReadiness, StaticWallet
from invoice_attest.schema import AttestationRecord, InvoiceForm, Network, TransactionDetails
from invoice_attest.transactions import StaticTransactionSource

SEPOLIA_CHAIN_ID = "0xaa36a7"
CUSTOMER = "0x71C7656EC7ab88b098defB751B7401B5f6d8976F"
TX_HASH = "0x5c504ed432cb51138bcf09aa5e8a410dd4a1e204ef84bfed1be16dfba1b22060"


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(info=None) -> bytes:
    """
    Minimal single-page PDF with an optional Info dictionary.
    """
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>",
    ]
    if info is not None:
        entries = " ".join(f"/{key} ({_escape(value)})" for key, value in info.items())
        objects.append(f"<< {entries} >>".encode("latin-1"))

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"

    xref_at = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode("ascii")
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("ascii")

    trailer = f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R"
    if info is not None:
        trailer += f" /Info {len(objects)} 0 R"
    trailer += f" >>\nstartxref\n{xref_at}\n%%EOF\n"
    out += trailer.encode("ascii")
    return bytes(out)


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def draft():
    return AttestationRecord(
        business_name="Acme",
        transaction_hash=TX_HASH,
        invoice_date=1714521600,
        customer=CUSTOMER,
        product_name="Widget",
        category="Hardware",
        quantity=5,
        amount=1000000000000000000,
        network=Network.SEPOLIA,
    )


@pytest.fixture
def record(draft):
    return draft.with_attestation("42")


@pytest.fixture
def form():
    return InvoiceForm(
        business_name="Acme",
        transaction_hash=TX_HASH,
        invoice_date="2024-05-01",
        product_name="Widget",
        category="Hardware",
        quantity="5",
        network="sepolia",
    )


@pytest.fixture
def transactions():
    source = StaticTransactionSource()
    source.add(TX_HASH, Network.SEPOLIA, TransactionDetails(amount=10**18, from_address=CUSTOMER))
    return source


@pytest.fixture
def ready():
    readiness = ChainReadiness(StaticWallet(SEPOLIA_CHAIN_ID), Network.SEPOLIA)
    readiness.check()
    return readiness


@pytest.fixture
def ledger():
    return InMemoryLedger(first_id=42)
