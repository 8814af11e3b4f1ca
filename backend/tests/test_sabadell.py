from datetime import date

import pytest

from finhub.services import sabadell
from finhub.services.importing import MissingColumnError
from finhub.services.tabular import read_csv


CSV = (
    "Fecha;Concepto;Movimiento;Saldo;Referencia\n"
    "02/01/2025;TRANSFERENCIA CLIENTE;1.234,56;11.234,56;REF1\n"
    "03/01/2025;COMISION MANTENIMIENTO;-12,00;11.222,56;\n"
    "03/01/2025;COMISION MANTENIMIENTO;-12,00;11.210,56;\n"
    "32/01/2025;FECHA ROTA;-1,00;;\n"
    "04/01/2025;SIN IMPORTE;;;\n"
    "05/01/2025;TEXTO;abc;;\n"
    ";;-5,00;;\n"
)


def _batch():
    return sabadell.normalize(read_csv(CSV.encode()), "sabadell.csv")


def test_normalize_reads_decimal_comma_amounts():
    batch = _batch()

    assert [record["external_id"] for record in batch.records] == [
        "2025-01-02|TRANSFERENCIA CLIENTE|1234.56",
        "2025-01-03|COMISION MANTENIMIENTO|-12.00",
        "2025-01-03|COMISION MANTENIMIENTO|-12.00-1",
    ]
    assert batch.skipped == {"invalid_date": 1, "invalid_amount": 2, "empty_row": 1}

    transfer = batch.records[0]
    assert transfer["source"] == "sabadell"
    assert transfer["date"] == date(2025, 1, 2)
    assert transfer["amount"] == 1234.56
    assert transfer["currency"] == "EUR"
    assert transfer["custom_data"]["credit"] == 1234.56
    assert transfer["custom_data"]["debit"] is None
    assert transfer["custom_data"]["balance"] == 11234.56
    assert transfer["custom_data"]["referencia"] == "REF1"
    assert transfer["custom_data"]["categoria"] == "Other"
    assert batch.records[1]["custom_data"]["debit"] == -12.0


def test_summary_extras():
    assert _batch().extras["summary"] == {
        "total_credits": 1234.56,
        "total_debits": -24.0,
        "final_balance": 11210.56,
    }


def test_required_columns():
    with pytest.raises(MissingColumnError):
        sabadell.normalize(read_csv(b"Fecha;Saldo\n02/01/2025;10,00\n"), "bad.csv")


def test_upload_is_idempotent_and_tracked(upload, store, client):
    upload("/api/csv/sabadell", "enero.csv", CSV)
    response = upload("/api/csv/sabadell", "enero-bis.csv", CSV)

    assert response.status_code == 200
    assert response.json()["data"]["inserted"] == 0
    assert response.json()["data"]["updated"] == 3
    assert store.count("csv_rows", eq={"source": "sabadell"}) == 3

    sources = client.get("/api/data-freshness").json()["data"]["sources"]
    by_source = {entry["source"]: entry for entry in sources}
    assert by_source["sabadell"]["status"] == "fresh"
    assert by_source["sabadell"]["total_records"] == 3
    assert by_source["sabadell"]["upload_path"] == "/api/csv/sabadell"
    assert by_source["bankinter-eur"]["status"] == "never"
