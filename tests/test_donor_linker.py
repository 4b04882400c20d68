"""
Unit tests for the donor linker.
"""
from giftsync.pipeline.donor_linker import DonorLinker
from giftsync.schemas import CustomerDetail


class TestLinkDonor:
    def test_no_customer_id(self, store, accounting):
        result = DonorLinker(store, accounting).link_donor(None, None)
        assert result.action == "skipped"
        assert result.reason == "no_customer_id"
        assert accounting.calls == []

    def test_creates_from_customer_detail(self, store, accounting):
        accounting.customers["42"] = CustomerDetail.from_quickbooks(
            {
                "Customer": {
                    "Id": "42",
                    "DisplayName": "Ada Lovelace",
                    "PrimaryEmailAddr": {"Address": "ada@example.org"},
                    "PrimaryPhone": {"FreeFormNumber": "555-0100"},
                    "BillAddr": {
                        "Line1": "1 Analytical Way",
                        "City": "London",
                        "CountrySubDivisionCode": "LDN",
                        "PostalCode": "N1",
                        "Country": "UK",
                    },
                    "CompanyName": "Engines Ltd",
                }
            }
        )
        result = DonorLinker(store, accounting).link_donor("42", None)
        assert result.action == "created"
        donor = result.donor
        assert donor.name == "Ada Lovelace"
        assert donor.email == "ada@example.org"
        assert donor.phone == "555-0100"
        assert (donor.address, donor.city, donor.state, donor.zip, donor.country) == (
            "1 Analytical Way",
            "London",
            "LDN",
            "N1",
            "UK",
        )
        assert donor.company == "Engines Ltd"
        assert donor.notes is None

    def test_missing_name_defaults(self, store, accounting):
        accounting.customers["7"] = CustomerDetail(id="7")
        result = DonorLinker(store, accounting).link_donor("7", None)
        assert result.donor.name == "Unknown"

    def test_existing_donor_not_overwritten(self, store, accounting):
        existing = store.create_donor(external_customer_id="42", name="Kept Name")
        result = DonorLinker(store, accounting).link_donor("42", None)
        assert result.action == "skipped"
        assert result.reason == "donor_exists"
        assert result.donor_id == existing.id
        assert store.get_donor(existing.id).name == "Kept Name"
        assert accounting.calls == []

    def test_scoped_by_organization(self, store, accounting):
        org_a = store.create_organization(name="A")
        org_b = store.create_organization(name="B")
        linker = DonorLinker(store, accounting)
        assert linker.link_donor("42", org_a.id).action == "created"
        assert linker.link_donor("42", org_b.id).action == "created"
        assert linker.link_donor("42", org_a.id).action == "skipped"


class TestLinkMany:
    def test_bulk_sync(self, store, accounting):
        store.create_donor(external_customer_id="2", name="Existing")
        customers = [
            CustomerDetail(id="1", display_name="One"),
            CustomerDetail(id="2", display_name="Two"),
            CustomerDetail(display_name="No Id"),
        ]
        result = DonorLinker(store, accounting).link_many(customers, None)
        assert (result.created, result.skipped, result.total) == (1, 2, 3)
        assert store.find_donor("1", None).name == "One"
