"""
Command-line interface for the attested invoice service.

Usage examples:
    invoice-attest issue --form form.json --wallet-chain-id 0xaa36a7 --output output/invoice.pdf
    invoice-attest embed --record output/record.json --output output/invoice.pdf
    invoice-attest extract --pdf output/invoice.pdf --output output/record.json
    invoice-attest show --pdf output/invoice.pdf
    invoice-attest verify --pdf output/invoice.pdf
    invoice-attest verify --pdf-dir received/ --report output/verification_report.json
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from .codec import decode, encode
from .config import configure_logging, get_settings
from .embedder import document_filename, write_document
from .errors import AttestationError, ExtractError
from .extractor import extract_from_path, extract_visible_text
from .issuer import issue_invoice
from .ledger import HttpLedger, Ledger
from .readiness import ChainReadiness, ReadinessState, StaticWallet
from .schema import InvoiceForm, Network
from .transactions import JsonRpcTransactionSource
from .verifier import verify_paths

app = typer.Typer(help="Attested invoice generation and verification CLI.")


def build_ledger() -> Ledger:
    return HttpLedger(get_settings())


def _ensure_parent_directory(path: Path) -> None:
    """
    Ensure the parent directory for a file path exists.
    """
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)


@app.command()
def issue(
    form: str = typer.Option(..., "--form", help="JSON file with the invoice form fields."),
    wallet_chain_id: str = typer.Option(
        ..., "--wallet-chain-id", help="Hex chain id the signing wallet is connected to."
    ),
    switch: bool = typer.Option(
        False, "--switch", help="Switch the wallet to the invoice's network if it is on another one."
    ),
    output: Optional[str] = typer.Option(
        None, "--output", help="Where to write the PDF. Defaults to output/invoice_<id>.pdf."
    ),
) -> None:
    """
    Register an invoice with the ledger and write its attested PDF.
    """
    form_path = Path(form)
    if not form_path.exists():
        typer.echo(f"Form JSON not found: {form_path}", err=True)
        raise typer.Exit(code=1)

    try:
        invoice_form = InvoiceForm.model_validate(json.loads(form_path.read_text(encoding="utf-8")))
    except (ValueError, ValidationError) as e:
        typer.echo(f"Invalid form JSON: {e}", err=True)
        raise typer.Exit(code=1)

    try:
        target = Network((invoice_form.network or "").strip())
    except ValueError:
        typer.echo(f"Unsupported network: {invoice_form.network}", err=True)
        raise typer.Exit(code=1)

    readiness = ChainReadiness(StaticWallet(wallet_chain_id), target)
    readiness.check()
    if readiness.state is ReadinessState.WRONG_NETWORK and switch:
        readiness.request_switch()

    settings = get_settings()
    try:
        record = issue_invoice(
            invoice_form,
            readiness,
            JsonRpcTransactionSource(settings),
            build_ledger(),
            settings,
        )
    except AttestationError as e:
        typer.echo(f"Error creating invoice: {e.message}", err=True)
        raise typer.Exit(code=1)

    output_path = Path(output) if output else Path("output") / document_filename(record)
    write_document(record, output_path, settings)
    typer.echo(f"Full Attestation ID: {record.full_attestation_id}")
    typer.echo(f"Wrote {output_path}")


@app.command()
def embed(
    record: str = typer.Option(..., "--record", help="Canonical record JSON (as written by `extract`)."),
    output: Optional[str] = typer.Option(None, "--output", help="Where to write the PDF."),
) -> None:
    """
    Embed an already-registered record into a new PDF document.
    """
    record_path = Path(record)
    if not record_path.exists():
        typer.echo(f"Record JSON not found: {record_path}", err=True)
        raise typer.Exit(code=1)

    try:
        attestation = decode(record_path.read_text(encoding="utf-8"))
    except ExtractError as e:
        typer.echo(f"Invalid record: {e.code}: {e.message}", err=True)
        raise typer.Exit(code=1)

    output_path = Path(output) if output else Path("output") / document_filename(attestation)
    write_document(attestation, output_path)
    typer.echo(f"Wrote {output_path}")


@app.command()
def extract(
    pdf: str = typer.Option(..., "--pdf", help="PDF document to read."),
    output: Optional[str] = typer.Option(None, "--output", help="Write the canonical record JSON here."),
) -> None:
    """
    Decode the attestation record embedded in a PDF.
    """
    try:
        record = extract_from_path(pdf)
    except FileNotFoundError:
        typer.echo(f"PDF not found: {pdf}", err=True)
        raise typer.Exit(code=1)
    except ExtractError as e:
        typer.echo(f"Not a valid attestation document: {e.code}: {e.message}", err=True)
        raise typer.Exit(code=2)

    text = encode(record)
    if output:
        output_path = Path(output)
        _ensure_parent_directory(output_path)
        output_path.write_text(text, encoding="utf-8")
        typer.echo(f"Extracted {record.full_attestation_id} to {output_path}")
    else:
        typer.echo(json.dumps(json.loads(text), indent=2))


@app.command()
def show(pdf: str = typer.Option(..., "--pdf", help="PDF document to preview.")) -> None:
    """
    Print the human-readable text of a document. Not used for verification.
    """
    try:
        typer.echo(extract_visible_text(Path(pdf).read_bytes()))
    except (OSError, ExtractError) as e:
        typer.echo(f"Cannot read {pdf}: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def verify(
    pdf: Optional[str] = typer.Option(None, "--pdf", help="Single PDF document to verify."),
    pdf_dir: Optional[str] = typer.Option(None, "--pdf-dir", help="Directory of PDF documents to verify."),
    report: Optional[str] = typer.Option(None, "--report", help="Path to write the verification report as JSON."),
) -> None:
    """
    Verify documents against the attestation ledger.
    """
    if bool(pdf) == bool(pdf_dir):
        typer.echo("Pass exactly one of --pdf or --pdf-dir.", err=True)
        raise typer.Exit(code=1)

    if pdf:
        paths = [Path(pdf)]
    else:
        directory = Path(pdf_dir)
        if not directory.exists() or not directory.is_dir():
            typer.echo(f"PDF directory not found: {directory}", err=True)
            raise typer.Exit(code=1)
        paths = sorted(directory.glob("*.pdf"))

    missing = [p for p in paths if not p.exists()]
    if missing:
        typer.echo(f"PDF not found: {missing[0]}", err=True)
        raise typer.Exit(code=1)

    report_obj = verify_paths(paths, build_ledger())

    if report:
        report_path = Path(report)
        _ensure_parent_directory(report_path)
        report_path.write_text(report_obj.model_dump_json(indent=2), encoding="utf-8")

    for name, outcome in report_obj.results.items():
        typer.echo(f"{name}: {outcome.status.value} - {outcome.message}")

    summary = report_obj.summary
    if pdf_dir:
        typer.echo(f"Total documents: {summary.total_documents}")
        typer.echo(f"Verified documents: {summary.verified_documents}")
        typer.echo(f"Rejected documents: {summary.rejected_documents}")
        typer.echo(f"Top reasons: {', '.join(summary.top_reasons) if summary.top_reasons else 'None'}")

    if summary.rejected_documents > 0:
        raise typer.Exit(code=2)


def main() -> None:
    """
    Entrypoint used when executing as a module.
    """
    configure_logging(get_settings().log_level)
    app()


if __name__ == "__main__":
    main()
