"""
Identity resolution tests.

Verifies:
- Principals resolve by linked user id OR case-insensitive email
- Duplicate profiles are all returned, oldest first
- Legacy profiles without a user link match on their own id
- Profile upsert creates once, then updates in place
"""

import pytest

from salesflow.errors import IncompleteProfileError, NotFoundError, ValidationError
from salesflow.models import Customer
from salesflow.services import identity_service
from salesflow.services.identity_service import Principal


class TestResolveCustomers:

    def test_no_principal_resolves_nothing(self, db_session, customer_a):
        assert identity_service.resolve_customers(None) == []

    def test_no_match_is_empty_not_an_error(self, db_session, customer_a):
        stranger = Principal(id=999999, email="nobody@example.com")
        assert identity_service.resolve_customers(stranger) == []

    def test_matches_by_linked_user_id(self, db_session, make_customer, user_a):
        customer = make_customer(user=user_a, email="different@example.com")
        principal = Principal(id=user_a.id, email="alice-other@example.com")

        assert [c.id for c in identity_service.resolve_customers(principal)] == [customer.id]

    def test_matches_by_email_case_insensitively(self, db_session, make_customer):
        customer = make_customer(email="Mixed.Case@Example.COM")
        principal = Principal(id="ext-42", email="  mixed.case@example.com ")

        assert [c.id for c in identity_service.resolve_customers(principal)] == [customer.id]

    def test_id_match_and_email_match_both_returned_in_insertion_order(
        self, db_session, make_customer, user_a
    ):
        by_email = make_customer(email=user_a.email.upper(), name="By Email")
        by_id = make_customer(user=user_a, email="linked@example.com", name="By Id")
        make_customer(customer_id=8003, email="someone.else@example.com", name="Unrelated")

        principal = Principal(id=user_a.id, email=user_a.email)
        resolved = identity_service.resolve_customers(principal)

        assert [c.id for c in resolved] == sorted([by_email.id, by_id.id])
        assert identity_service.resolve_primary_customer(principal).id == min(by_email.id, by_id.id)

    def test_other_principals_profiles_are_not_matched(self, db_session, customer_a, customer_b, principal_a):
        resolved = identity_service.resolve_customers(principal_a)
        assert [c.id for c in resolved] == [customer_a.id]

    def test_legacy_profile_matches_on_its_own_id(self, db_session, make_customer):
        legacy = make_customer(customer_id=7001, email="legacy@example.com")
        principal = Principal(id="7001", email="new-address@example.com")

        assert [c.id for c in identity_service.resolve_customers(principal)] == [legacy.id]

    def test_linked_profile_does_not_match_on_its_own_id(self, db_session, make_customer, user_b):
        make_customer(user=user_b, customer_id=7002, email="linked@example.com")
        principal = Principal(id=7002, email="unrelated@example.com")

        assert identity_service.resolve_customers(principal) == []


class TestRequireCustomer:

    def test_missing_profile_is_incomplete(self, db_session, principal_a):
        with pytest.raises(IncompleteProfileError) as exc:
            identity_service.require_customer(principal_a)
        assert exc.value.status_code == 400
        assert exc.value.code == "PROFILE_INCOMPLETE"

    def test_get_profile_missing_is_not_found(self, db_session, principal_a):
        with pytest.raises(NotFoundError):
            identity_service.get_profile(principal_a)


class TestUpsertProfile:

    def test_first_submission_creates_profile_from_principal(self, db_session, principal_a, user_a):
        customer, created = identity_service.upsert_profile(principal_a, {
            "company_name": "Alice Traders",
            "phone": "12345",
            "address": "12 Market Road",
            "email": "spoofed@example.com",
        })

        assert created is True
        assert customer.user_id == user_a.id
        assert customer.email == user_a.email
        assert customer.name == "Alice"
        assert customer.customer_type == "business"
        assert customer.billing_address["street"] == "12 Market Road"
        assert customer.billing_address["country"] == "India"
        assert customer.shipping_address == customer.billing_address

    def test_resubmission_updates_in_place(self, db_session, principal_a):
        first, _ = identity_service.upsert_profile(principal_a, {"company_name": "Old Co"})
        second, created = identity_service.upsert_profile(principal_a, {
            "company_name": "New Co",
            "shipping_address": {"street": "Dock 4", "city": "Mumbai"},
        })

        assert created is False
        assert second.id == first.id
        assert second.company_name == "New Co"
        assert second.shipping_address["street"] == "Dock 4"
        assert db_session.query(Customer).count() == 1

    def test_updates_primary_match_when_duplicates_exist(self, db_session, make_customer, user_a, principal_a):
        older = make_customer(email=user_a.email, name="Older")
        newer = make_customer(user=user_a, name="Newer")

        customer, created = identity_service.upsert_profile(principal_a, {"name": "Renamed"})

        assert created is False
        assert customer.id == older.id
        assert db_session.get(Customer, newer.id).name == "Newer"

    def test_address_must_be_an_object(self, db_session, principal_a):
        with pytest.raises(ValidationError):
            identity_service.upsert_profile(principal_a, {"billing_address": "not an object"})

    def test_anonymous_cannot_save_profile(self, db_session):
        with pytest.raises(ValidationError):
            identity_service.upsert_profile(None, {"name": "Ghost"})
