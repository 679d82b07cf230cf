"""Unit tests for field detection and blank-field context inference."""

from docfill.field_detector import (
    classify_named,
    detect_fields,
    infer_from_context,
    normalize_name,
    title_case,
)
from docfill.models import FieldType


class TestNormalization:

    def test_normalize_spaces_and_case(self):
        assert normalize_name("  company name ") == "COMPANY_NAME"

    def test_normalize_collapses_punctuation_runs(self):
        assert normalize_name("Investor's E-mail") == "INVESTOR_S_E_MAIL"

    def test_normalize_trims_underscores(self):
        assert normalize_name("--Amount--") == "AMOUNT"

    def test_normalize_symbols_only_is_empty(self):
        assert normalize_name("!!!") == ""

    def test_title_case(self):
        assert title_case("POST_MONEY_VALUATION_CAP") == "Post Money Valuation Cap"


class TestNamedClassification:

    def test_date(self):
        identity = classify_named("DATE_OF_SAFE")
        assert identity.type == FieldType.DATE
        assert identity.description == "Date"

    def test_deadline(self):
        assert classify_named("FILING_DEADLINE").type == FieldType.DATE

    def test_email(self):
        identity = classify_named("INVESTOR_EMAIL")
        assert identity.type == FieldType.EMAIL
        assert identity.description == "Email address"

    def test_number_keeps_title_cased_description(self):
        identity = classify_named("POST_MONEY_VALUATION_CAP")
        assert identity.type == FieldType.NUMBER
        assert identity.description == "Post Money Valuation Cap"

    def test_price(self):
        assert classify_named("PRICE_PER_SHARE").type == FieldType.NUMBER

    def test_state(self):
        identity = classify_named("STATE_OF_INCORPORATION")
        assert identity.type == FieldType.TEXT
        assert identity.description == "State"

    def test_default_text(self):
        identity = classify_named("COMPANY_NAME")
        assert identity.type == FieldType.TEXT
        assert identity.description == "Company Name"

    def test_first_rule_wins(self):
        # "date" is checked before "amount"
        assert classify_named("AMOUNT_DUE_DATE").type == FieldType.DATE


class TestContextInference:

    def test_company_name(self):
        assert infer_from_context("the name of the company is").name == "COMPANY_NAME"

    def test_investor_name(self):
        assert infer_from_context("investor name:").name == "INVESTOR_NAME"

    def test_currency_marker(self):
        identity = infer_from_context("in exchange for the payment of $")
        assert identity.name == "PURCHASE_AMOUNT"
        assert identity.type == FieldType.NUMBER

    def test_day_of(self):
        assert infer_from_context("signed this day of").type == FieldType.DATE

    def test_post_money(self):
        assert infer_from_context("the post-money valuation").name == "VALUATION_CAP"

    def test_state(self):
        identity = infer_from_context("incorporated in the state of")
        assert identity.name == "STATE"
        assert identity.type == FieldType.STATE

    def test_no_match(self):
        assert infer_from_context("please sign here") is None


class TestDetectFields:

    def test_scenario_three_fields(self):
        fields = detect_fields("This is between [COMPANY_NAME] and [INVESTOR_NAME] for $[AMOUNT]")
        assert [f.name for f in fields] == ["COMPANY_NAME", "INVESTOR_NAME", "AMOUNT"]
        amount = fields[2]
        assert amount.type == FieldType.NUMBER
        assert amount.description == "Amount"
        assert all(f.value is None for f in fields)

    def test_original_text_is_literal_content(self):
        fields = detect_fields("Issued by [Company Name] today.")
        assert fields[0].name == "COMPANY_NAME"
        assert fields[0].original_text == "Company Name"

    def test_duplicates_collapse_first_literal_wins(self):
        fields = detect_fields("[Company Name] ... again [COMPANY NAME] ... [ company name ]")
        assert len(fields) == 1
        assert fields[0].original_text == "Company Name"

    def test_original_text_keeps_padding(self):
        fields = detect_fields("Issued by [ Company Name ] today.")
        assert fields[0].name == "COMPANY_NAME"
        assert fields[0].original_text == " Company Name "

    def test_marker_does_not_span_lines(self):
        fields = detect_fields("Footnote [1\nsee above] and [Company Name].")
        assert [f.name for f in fields] == ["COMPANY_NAME"]

    def test_order_is_first_occurrence(self, safe_text):
        names = [f.name for f in detect_fields(safe_text)]
        assert names == [
            "INVESTOR_NAME",
            "PURCHASE_AMOUNT",
            "DATE_OF_SAFE",
            "COMPANY_NAME",
            "STATE_OF_INCORPORATION",
            "POST_MONEY_VALUATION_CAP",
        ]

    def test_deterministic(self, safe_text):
        assert detect_fields(safe_text) == detect_fields(safe_text)

    def test_empty_and_symbol_markers_skipped(self):
        assert detect_fields("Nothing here [ ] or [!!!] or [  -  ]") == []

    def test_no_markers(self):
        assert detect_fields("A plain paragraph.") == []
        assert detect_fields("") == []

    def test_blank_after_state_of_is_state_field(self):
        fields = detect_fields("Under Delaware law, it is incorporated in the State of [_____].")
        assert len(fields) == 1
        assert fields[0].name == "STATE"
        assert fields[0].type == FieldType.STATE
        assert fields[0].original_text == "_____"

    def test_blank_without_context_is_not_a_field(self):
        assert detect_fields("Please sign here: [_____] thank you.") == []

    def test_blank_amount(self):
        fields = detect_fields("for the sum of $[_______] to be paid")
        assert fields[0].name == "PURCHASE_AMOUNT"
        assert fields[0].type == FieldType.NUMBER

    def test_blank_and_named_share_a_name(self):
        text = "Investor name: [Investor Name]. Signed by the investor, name: [____]"
        fields = detect_fields(text)
        assert len(fields) == 1
        assert fields[0].original_text == "Investor Name"
