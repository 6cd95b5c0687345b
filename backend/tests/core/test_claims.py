"""
Tests for ProviderClaims construction and the name derivation chain.
"""

from jose import jwt

from auth0_bridge.core.auth0.claims import (
    ProviderClaims,
    derive_name,
    split_full_name,
    unverified_id_token_claims,
)


def _claims(**kwargs) -> ProviderClaims:
    data = {"subject": "auth0|1", "email": ""}
    data.update(kwargs)
    return ProviderClaims(**data)


class TestDeriveName:
    def test_given_and_family_name_win(self):
        claims = _claims(given_name="A", family_name="B", name="C D", nickname="E F")
        assert derive_name(claims) == ("A", "B")

    def test_name_split_on_first_space(self):
        claims = _claims(name="C D", nickname="E F")
        assert derive_name(claims) == ("C", "D")

    def test_nickname_with_space(self):
        assert derive_name(_claims(nickname="E F")) == ("E", "F")

    def test_nickname_without_space_is_first_name_only(self):
        assert derive_name(_claims(nickname="solo")) == ("solo", "")

    def test_email_local_part_with_dot(self):
        assert derive_name(_claims(email="jane.doe@x.com")) == ("jane", "doe")

    def test_email_local_part_with_underscore(self):
        assert derive_name(_claims(email="jane_doe@x.com")) == ("jane", "doe")

    def test_email_local_part_whole(self):
        assert derive_name(_claims(email="alice@x.com")) == ("alice", "")

    def test_fallback_sentinel(self):
        assert derive_name(_claims()) == ("User", "")

    def test_custom_default_first_name(self):
        """The update path asks for an empty default instead of the sentinel."""
        assert derive_name(_claims(), default_first_name="") == ("", "")

    def test_blank_name_is_skipped(self):
        assert derive_name(_claims(name="   ", nickname="solo")) == ("solo", "")

    def test_given_name_without_family_name(self):
        assert derive_name(_claims(given_name="Ada", name="Ada Lovelace")) == ("Ada", "")


class TestSplitFullName:
    def test_keeps_remainder_as_last_name(self):
        assert split_full_name("Ada King Lovelace") == ("Ada", "King Lovelace")

    def test_trims_before_split(self):
        assert split_full_name("  Ada Lovelace ") == ("Ada", "Lovelace")


class TestFromProviderResponse:
    def test_subject_and_email_come_from_userinfo(self):
        id_token = jwt.encode(
            {"sub": "auth0|forged", "email": "forged@x.com", "name": "Ada Lovelace"},
            "irrelevant",
            algorithm="HS256",
        )
        claims = ProviderClaims.from_provider_response(
            {"access_token": "at", "id_token": id_token},
            {"sub": "auth0|real", "email": "ada@x.com"},
        )

        assert claims.subject == "auth0|real"
        assert claims.email == "ada@x.com"
        assert claims.name == "Ada Lovelace"
        assert claims.access_token == "at"
        assert claims.raw_userinfo == {"sub": "auth0|real", "email": "ada@x.com"}

    def test_id_token_does_not_override_userinfo(self):
        id_token = jwt.encode({"nickname": "from-token", "picture": "https://a/p.png"}, "k", algorithm="HS256")
        claims = ProviderClaims.from_provider_response(
            {"access_token": "at", "id_token": id_token},
            {"sub": "s", "email": "e@x.com", "nickname": "from-userinfo"},
        )

        assert claims.nickname == "from-userinfo"
        assert claims.avatar_url == "https://a/p.png"

    def test_undecodable_id_token_is_ignored(self):
        claims = ProviderClaims.from_provider_response(
            {"access_token": "at", "id_token": "not-a-jwt"},
            {"sub": "s", "email": "e@x.com", "name": "Eve"},
        )
        assert claims.name == "Eve"

    def test_unverified_claims_without_token(self):
        assert unverified_id_token_claims(None) == {}

    def test_email_local_part(self):
        assert _claims(email="alice@x.com").email_local_part == "alice"
        assert _claims(email="").email_local_part == ""
