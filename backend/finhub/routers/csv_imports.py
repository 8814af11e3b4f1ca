from __future__ import annotations

import logging
from typing import Callable, Sequence

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from finhub.dependencies import get_store
from finhub.services import bankinter_eur, braintree_csv, chase_usd, craft_commerce, invoice_orders, sabadell
from finhub.services.importing import MissingColumnError, NoValidRowsError, NormalizedBatch, run_import
from finhub.services.tabular import CSV_EXTENSIONS, XLSX_EXTENSIONS, TabularFile, TabularFileError, read_table
from finhub.store import RowStore


logger = logging.getLogger(__name__)

router = APIRouter()


async def _import_upload(
    store: RowStore,
    file: UploadFile,
    normalize: Callable[[TabularFile, str], NormalizedBatch],
    *,
    allowed: Sequence[str],
    date_column: str = "date",
) -> dict:
    """
    Shared upload flow for every source.

    Bad files (wrong extension, unreadable, missing the format's headers, no
    valid rows) are rejected with 400; anything else propagates to the app's
    error handlers.
    """
    file_name = file.filename or "upload.csv"
    raw_bytes = await file.read()
    if not raw_bytes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file was uploaded or the file is empty.")

    try:
        table = read_table(file_name, raw_bytes, allowed=allowed)
        result = run_import(store, normalize, table, file_name, raw_bytes, date_column=date_column)
    except (TabularFileError, MissingColumnError, NoValidRowsError) as exc:
        logger.warning("Rejected upload %s: %s", file_name, exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    logger.info(
        "Imported %s into %s: %s new, %s updated, %s skipped",
        file_name,
        result.source,
        result.inserted,
        result.updated,
        result.skipped,
    )
    return {"success": True, "data": result.as_dict()}


@router.post("/braintree-csv")
async def import_braintree_csv(
    file: UploadFile = File(...),
    store: RowStore = Depends(get_store),
) -> dict:
    """
    Import a Braintree "Transaction Search" CSV export.

    Revenue rows go to ``braintree-api-revenue`` keyed by transaction id; rows
    with a service fee also write a ``braintree-api-fees`` row. Re-uploading an
    overlapping export updates the existing rows in place.
    """
    return await _import_upload(store, file, braintree_csv.normalize, allowed=CSV_EXTENSIONS)


@router.post("/craft-commerce")
async def import_craft_commerce(
    file: UploadFile = File(...),
    store: RowStore = Depends(get_store),
) -> dict:
    """Import a Craft Commerce order export into ar_invoices (keyed by invoice_number + scope)."""
    return await _import_upload(
        store,
        file,
        craft_commerce.normalize,
        allowed=CSV_EXTENSIONS,
        date_column="invoice_date",
    )


@router.post("/invoice-orders")
async def import_invoice_orders(
    file: UploadFile = File(...),
    store: RowStore = Depends(get_store),
) -> dict:
    return await _import_upload(
        store,
        file,
        invoice_orders.normalize,
        allowed=CSV_EXTENSIONS + XLSX_EXTENSIONS,
    )


@router.post("/chase-usd")
async def import_chase_usd(
    file: UploadFile = File(...),
    store: RowStore = Depends(get_store),
) -> dict:
    return await _import_upload(store, file, chase_usd.normalize, allowed=(".csv",))


@router.post("/bankinter-eur")
async def import_bankinter_eur(
    file: UploadFile = File(...),
    store: RowStore = Depends(get_store),
) -> dict:
    """Import a Bankinter EUR statement workbook; the header row may sit below a title block."""
    return await _import_upload(store, file, bankinter_eur.normalize, allowed=XLSX_EXTENSIONS)


@router.post("/sabadell")
async def import_sabadell(
    file: UploadFile = File(...),
    store: RowStore = Depends(get_store),
) -> dict:
    return await _import_upload(store, file, sabadell.normalize, allowed=(".csv",))
