"""
Tests for query-string redaction in request logs.
"""

import pytest

from auth0_bridge.common.logging import redact_query


class TestRedactQuery:
    def test_masks_authorization_code_and_state(self):
        assert redact_query("code=abc123&state=xyz&next=%2Faccount") == "code=***&state=***&next=%2Faccount"

    def test_keeps_error_parameters(self):
        assert redact_query("error=access_denied&error_description=nope") == (
            "error=access_denied&error_description=nope"
        )

    @pytest.mark.parametrize("query", ["", None])
    def test_empty(self, query):
        assert redact_query(query) == ""
