"""
Tests for synthetic advisory descriptions.
"""
from advisory_gate.decisioning import AdvisoryExplainer


class TestAdvisoryExplainer:
    """Test template rendering."""

    def test_lock_read_error(self):
        explainer = AdvisoryExplainer()

        text = explainer.explain('LOCK_READ_ERROR', {'source': 'bun.lock', 'message': 'EACCES'})

        assert text == "Failed to read bun.lock: EACCES"

    def test_parse_error_uses_code(self):
        explainer = AdvisoryExplainer()

        text = explainer.explain('LOCK_PARSE_ERROR', {'code': 'MissingPackages'})

        assert text == "Failed to parse bun.lock: MissingPackages"

    def test_missing_values_use_defaults(self):
        explainer = AdvisoryExplainer()

        assert explainer.explain('OSV_SCAN_ERROR', {}) == "OSV scanner failed: Unknown error"

    def test_unknown_reason_uses_default(self):
        explainer = AdvisoryExplainer()

        assert explainer.explain('NOPE', {}) == "Security scan could not complete."

    def test_missing_custom_variable_falls_back(self):
        explainer = AdvisoryExplainer(templates={'X': "needs {nothing}"})

        text = explainer.explain('X', {})

        assert text == "Security scan could not complete. Reason: X."
