from __future__ import annotations

from typing import Any, Mapping

from ..data_model import TaxInputs, TaxResults

VAT_RATE = 0.12
VAT_GROSS_FACTOR = 1.12


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def derive(inputs: TaxInputs | Mapping[str, Any] | None) -> TaxResults:
    """Derive VAT, withholding and income-tax amounts for one contract.

    Total and side-effect free. Mappings are coerced through
    ``TaxInputs.from_dict`` first; every ratio over ``abc`` is 0 when ``abc``
    is not positive.
    """
    if not isinstance(inputs, TaxInputs):
        inputs = TaxInputs.from_dict(inputs)

    abc = inputs.abc
    expenses_vat_inc = inputs.expenses_vat_inc
    expenses_non_vat = inputs.expenses_non_vat
    undeclared = inputs.undeclared_expenses

    price_vat_ex = abc / VAT_GROSS_FACTOR if abc > 0 else 0.0
    output_vat = abc - price_vat_ex

    input_vat = expenses_vat_inc * (12 / 112)
    expenses_vat_ex = expenses_vat_inc - input_vat

    taxable_income = abc - expenses_vat_ex - expenses_non_vat
    output_vat_calc = price_vat_ex * VAT_RATE

    withholding_vat = price_vat_ex * (inputs.withholding_vat_percent / 100)
    vat_still_payable = output_vat_calc - withholding_vat - input_vat

    income_tax_due = taxable_income * (inputs.income_tax_percent / 100)
    withholding_it = price_vat_ex * (inputs.withholding_it_percent / 100)
    income_tax_still_payable = income_tax_due - withholding_it

    total_taxes_payable = vat_still_payable + income_tax_still_payable
    total_if_no_withholding = output_vat_calc - input_vat + income_tax_due

    net_income_after_tax = abc - expenses_vat_inc - expenses_non_vat - total_if_no_withholding
    percent_income = (
        1 - (expenses_vat_inc + expenses_non_vat + total_if_no_withholding) / abc if abc > 0 else 0.0
    )

    cheque_comp = abc - withholding_vat - withholding_it
    cheque_receivable = cheque_comp * (1 - inputs.retention_percent / 100)

    tpc1_percent = _ratio(undeclared, abc) if undeclared > 0 else 0.0
    net_income_after_tpc1 = net_income_after_tax - undeclared

    return TaxResults(
        abc=abc,
        expenses_vat_inc=expenses_vat_inc,
        expenses_non_vat=expenses_non_vat,
        retention_percent=inputs.retention_percent,
        undeclared_expenses=undeclared,
        withholding_vat_percent=inputs.withholding_vat_percent,
        income_tax_percent=inputs.income_tax_percent,
        withholding_it_percent=inputs.withholding_it_percent,
        price_vat_ex=price_vat_ex,
        output_vat=output_vat,
        input_vat=input_vat,
        expenses_vat_ex=expenses_vat_ex,
        taxable_income=taxable_income,
        output_vat_calc=output_vat_calc,
        withholding_vat=withholding_vat,
        vat_still_payable=vat_still_payable,
        income_tax_due=income_tax_due,
        withholding_it=withholding_it,
        income_tax_still_payable=income_tax_still_payable,
        total_taxes_payable=total_taxes_payable,
        total_if_no_withholding=total_if_no_withholding,
        net_income_after_tax=net_income_after_tax,
        percent_income=percent_income,
        cheque_comp=cheque_comp,
        cheque_receivable=cheque_receivable,
        tpc1_percent=tpc1_percent,
        net_income_after_tpc1=net_income_after_tpc1,
    )
