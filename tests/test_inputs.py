import pytest

from taxcalc.data_model import CalculationEntry, IdGenerator, InputTableModel, TaxInputs, TaxResults, coerce_number, coerce_rate


def test_coerce_number_handles_form_values():
    assert coerce_number("1,250.50") == 1250.5
    assert coerce_number("₱2,000") == 2000.0
    assert coerce_number(" 42 ") == 42.0
    assert coerce_number("") == 0.0
    assert coerce_number(None) == 0.0
    assert coerce_number("abc") == 0.0
    assert coerce_number(True) == 0.0
    assert coerce_number(float("nan")) == 0.0
    assert coerce_number(10**400) == 0.0
    assert coerce_number("1" + "0" * 400) == 0.0


def test_coerce_rate_keeps_explicit_zero():
    assert coerce_rate(0, 5) == 0.0
    assert coerce_rate("0", 5) == 0.0
    assert coerce_rate(None, 5) == 5.0
    assert coerce_rate("", 25) == 25.0
    assert coerce_rate("12.5", 25) == 12.5


def test_inputs_round_trip_through_wire_names():
    raw = {
        "abc": "112000",
        "expensesVatInc": 1120,
        "projectId": 1700000000000,
        "projectName": "  Bridge repair ",
    }

    inputs = TaxInputs.from_dict(raw)

    assert inputs.abc == 112000.0
    assert inputs.project_id == "1700000000000"
    assert inputs.project_name == "Bridge repair"
    assert inputs.withholding_vat_percent == 5.0
    assert TaxInputs.from_dict(inputs.to_dict()) == inputs


def test_merged_with_applies_partial_update():
    base = TaxInputs(abc=1000, expenses_vat_inc=50, income_tax_percent=30)

    updated = base.merged_with({"abc": "2000"})

    assert updated.abc == 2000
    assert updated.expenses_vat_inc == 50
    assert updated.income_tax_percent == 30


def test_results_accept_legacy_withholding_keys():
    results = TaxResults.from_dict({"withholdingVat5": 500, "withholdingIt2": 200, "netIncomeAfterTax": 10})

    assert results.withholding_vat == 500
    assert results.withholding_it == 200
    assert results.withholding_vat_percent == 5
    assert results.price_vat_ex == 0


def test_entry_requires_id():
    with pytest.raises(ValueError, match="id"):
        CalculationEntry.from_dict({"timestamp": "x"})


def test_non_object_snapshots_fall_back_to_defaults():
    entry = CalculationEntry.from_dict({"id": 1, "inputs": "junk", "results": []})

    assert entry.inputs == TaxInputs()
    assert entry.results.withholding_vat_percent == 5
    assert entry.results.net_income_after_tax == 0


def test_id_generator_is_strictly_increasing_within_same_millisecond():
    ids = IdGenerator(clock=lambda: 1700000000.0)

    first, second, third = ids.next_id(), ids.next_id(), ids.next_id()

    assert first == 1700000000000
    assert second == first + 1
    assert third == first + 2


def test_input_form_schema_defaults():
    model = InputTableModel()

    defaults = model.default_values()

    assert [col.field for col in model.columns][:3] == ["projectId", "projectName", "abc"]
    assert defaults["withholdingVatPercent"] == 5.0
    assert defaults["incomeTaxPercent"] == 25.0
    assert defaults["abc"] == 0.0
