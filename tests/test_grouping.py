from datetime import date

from smb_cashflow.document_types import (
    document_multiplier,
    document_type_name,
    is_credit_note,
    normalize_type_code,
)
from smb_cashflow.errors import DataIssue
from smb_cashflow.grouping import group_related_documents
from smb_cashflow.models import Invoice


def make_invoice(
    invoice_id: int,
    folio,
    total: float,
    doc_date=date(2024, 1, 5),
    type_code: str = "33",
    referenced_folio=None,
    number=None,
) -> Invoice:
    """Helper to build a sale invoice with sensible defaults."""
    return Invoice(
        id=invoice_id,
        folio=folio,
        number=number,
        counterparty_name="ACME",
        counterparty_tax_id="76.000.000-1",
        document_type_code=type_code,
        document_date=doc_date,
        total_amount=total,
        referenced_folio=referenced_folio,
    )


def test_document_type_codes() -> None:
    assert normalize_type_code("61.0") == "61"
    assert normalize_type_code(61) == "61"
    assert normalize_type_code(None) == ""
    assert document_multiplier("61") == -1
    assert document_multiplier("33") == 1
    # Unknown codes add, like regular documents.
    assert document_multiplier("999") == 1


def test_document_type_names_and_credit_note_codes() -> None:
    assert document_type_name("33") == "Electronic invoice"
    assert document_type_name(61.0) == "Electronic credit note"
    assert document_type_name("999") == "Type 999"
    assert is_credit_note("61.0") is True
    assert is_credit_note("56") is False

    # A type 61 without a referenced folio is treated as a regular document.
    assert make_invoice(3, "NC-9", 10.0, type_code="61").is_credit_note is False


def test_credit_note_grouped_with_original_and_fully_cancelled() -> None:
    original = make_invoice(1, "INV-2", 1000.0)
    credit = make_invoice(
        2, "NC-1", 1000.0, date(2024, 2, 10), type_code="61", referenced_folio="INV-2"
    )

    groups = group_related_documents([original, credit])

    assert len(groups) == 1
    group = groups[0]
    assert group.original is original
    assert group.credit_notes == (credit,)
    assert group.net_amount == 0.0
    assert group.is_fully_cancelled is True
    assert group.label == "INV-2"


def test_partial_credit_note_is_not_a_cancellation() -> None:
    original = make_invoice(1, "100", 1000.0)
    credit = make_invoice(2, "5", 300.0, type_code="61", referenced_folio="100")

    (group,) = group_related_documents([original, credit])

    assert group.net_amount == 700.0
    assert group.is_fully_cancelled is False


def test_credit_notes_exceeding_original_give_negative_net() -> None:
    original = make_invoice(1, "100", 500.0)
    credits = [
        make_invoice(2, "5", 400.0, type_code="61", referenced_folio="100"),
        make_invoice(3, "6", 200.0, type_code="61", referenced_folio="100"),
    ]

    (group,) = group_related_documents([original, *credits])

    assert group.net_amount == -100.0
    assert group.is_fully_cancelled is True
    assert len(group.credit_notes) == 2


def test_credit_note_before_original_in_input_order() -> None:
    """A credit note seen before its original still ends up in its group."""
    credit = make_invoice(2, "NC-1", 100.0, type_code="61", referenced_folio="A1")
    original = make_invoice(1, "A1", 100.0)

    (group,) = group_related_documents([credit, original])

    assert group.original is original
    assert group.credit_notes == (credit,)


def test_orphan_credit_note_is_dropped_and_reported() -> None:
    orphan = make_invoice(9, "NC-9", 50.0, type_code="61", referenced_folio="MISSING")
    other = make_invoice(1, "A1", 100.0)
    issues: list[DataIssue] = []

    groups = group_related_documents([orphan, other], issues)

    assert [g.original.id for g in groups] == [1]
    assert len(issues) == 1
    assert issues[0].kind == "orphan_credit_note"
    assert issues[0].record_id == 9


def test_credit_note_without_reference_stands_as_its_own_group() -> None:
    standalone = make_invoice(4, "NC-4", 80.0, type_code="61")

    (group,) = group_related_documents([standalone])

    assert group.original is standalone
    assert group.credit_notes == ()
    assert group.is_fully_cancelled is False


def test_missing_folio_falls_back_to_number_then_synthetic_id() -> None:
    by_number = make_invoice(1, None, 10.0, number=77)
    no_key = make_invoice(2, None, 20.0)

    groups = group_related_documents([by_number, no_key])

    assert sorted(g.label for g in groups) == ["77", "doc-2"]


def test_duplicate_folio_keeps_both_originals() -> None:
    first = make_invoice(1, "X1", 100.0)
    second = make_invoice(2, "X1", 200.0)

    groups = group_related_documents([first, second])

    assert {g.original.id for g in groups} == {1, 2}
    assert sum(g.net_amount for g in groups) == 300.0


def test_groups_sorted_by_document_date_with_undated_last() -> None:
    late = make_invoice(1, "L", 1.0, date(2024, 3, 1))
    undated = make_invoice(2, "U", 1.0, None)
    early = make_invoice(3, "E", 1.0, date(2024, 1, 1))

    groups = group_related_documents([late, undated, early])

    assert [g.label for g in groups] == ["E", "L", "U"]
