"""
RecipientFieldMapper — per-currency recipient schemas.
"""
from __future__ import annotations

from engine.recipient_mapper import (
    FieldSpec,
    RecipientFieldMapper,
    RecipientSchema,
)


class TestKnownSchemas:

    def test_gbp_sandbox_placeholders(self):
        mapped = RecipientFieldMapper().map_recipient("GBP", None)
        assert mapped.recipient_type == "sort_code"
        assert mapped.details == {
            "legalType": "PRIVATE",
            "sortCode": "231470",
            "accountNumber": "31926819",
        }
        assert set(mapped.placeholders_used) == {"sortCode", "accountNumber"}

    def test_caller_details_take_precedence(self):
        mapped = RecipientFieldMapper().map_recipient(
            "GBP", {"sort_code": "040004", "accountNumber": "12345678"},
        )
        assert mapped.details["sortCode"] == "040004"
        assert mapped.details["accountNumber"] == "12345678"
        assert mapped.placeholders_used == ()

    def test_mxn_uses_clabe(self):
        mapped = RecipientFieldMapper().map_recipient("mxn", {"clabe": "002010077777777771"})
        assert mapped.recipient_type == "mexican"
        assert mapped.details["clabe"] == "002010077777777771"

    def test_eur_iban(self):
        mapped = RecipientFieldMapper().map_recipient("EUR", {"iban": "ES9121000418450200051332"})
        assert mapped.recipient_type == "iban"
        assert mapped.details["IBAN"] == "ES9121000418450200051332"

    def test_legal_type_always_private(self):
        mapped = RecipientFieldMapper().map_recipient("INR", {"legalType": "BUSINESS"})
        assert mapped.details["legalType"] == "PRIVATE"


class TestProduction:

    def test_no_placeholders_in_production(self):
        mapped = RecipientFieldMapper().map_recipient("GBP", {}, production=True)
        assert mapped.details == {"legalType": "PRIVATE"}
        assert mapped.placeholders_used == ()

    def test_supplied_details_still_mapped_in_production(self):
        mapped = RecipientFieldMapper().map_recipient("INR", {"ifsc": "HDFC0000001"}, production=True)
        assert mapped.details["ifscCode"] == "HDFC0000001"
        assert "accountNumber" not in mapped.details


class TestRegistry:

    def test_unmapped_currency_falls_back_to_generic(self):
        mapper = RecipientFieldMapper()
        mapped = mapper.map_recipient("GTQ", {"account_number": "998877", "bank_code": "BI"})
        assert not mapper.supports("GTQ")
        assert mapped.recipient_type == "bank_account"
        assert mapped.details["accountNumber"] == "998877"
        assert mapped.details["bankCode"] == "BI"

    def test_register_extends_instance_only(self):
        mapper = RecipientFieldMapper()
        mapper.register("gtq", RecipientSchema(
            "guatemala", (FieldSpec("accountNumber", ("account_number",), "000111"),),
            fixed={"accountType": "SAVINGS"},
        ))
        mapped = mapper.map_recipient("GTQ", {})
        assert mapped.recipient_type == "guatemala"
        assert mapped.details["accountType"] == "SAVINGS"
        assert mapped.details["accountNumber"] == "000111"
        assert not RecipientFieldMapper().supports("GTQ")
