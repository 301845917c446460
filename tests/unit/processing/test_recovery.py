import pytest
from section_cdc.processing.recovery import (
    IgnorePolicy,
    MaxFailuresPolicy,
    PropagatePolicy,
    RecoveryContext,
    RecoveryPolicyFactory,
)
from section_cdc.rows import ChangeKind, InsertRow
from section_cdc.utils.exceptions import UnsupportedTypeError


@pytest.fixture
def context():
    return RecoveryContext(
        exception=RuntimeError("boom"),
        schema="shop",
        table="orders",
        kind=ChangeKind.INSERT,
        rows=[InsertRow(after={"id": "1"})],
    )


class TestPolicies:
    """Test cases for the bundled recovery policies"""

    def test_propagate_never_ignores(self, context):
        assert PropagatePolicy().should_ignore(context.exception, False, context) is False
        assert PropagatePolicy().should_ignore(context.exception, True, context) is False

    def test_ignore_always_ignores(self, context):
        assert IgnorePolicy().should_ignore(context.exception, False, context) is True

    def test_max_failures_counts(self, context):
        policy = MaxFailuresPolicy(max_failures=2)

        results = [policy.should_ignore(context.exception, False, context) for _ in range(3)]

        assert results == [True, True, False]
        assert policy.failures == 3

    def test_max_failures_zero_never_ignores(self, context):
        assert MaxFailuresPolicy(0).should_ignore(context.exception, False, context) is False

    def test_negative_max_failures(self):
        with pytest.raises(ValueError):
            MaxFailuresPolicy(-1)


class TestRecoveryContext:
    """Test cases for the recovery context"""

    def test_describe(self, context):
        description = context.describe()

        assert "RuntimeError" in description
        assert "shop.orders" in description
        assert "Insert" in description
        assert "1 pending rows" in description

    def test_describe_without_key(self):
        context = RecoveryContext(RuntimeError("x"), None, None, None, [])

        assert "None.None" in context.describe()


class TestRecoveryPolicyFactory:
    """Test cases for RecoveryPolicyFactory"""

    def test_create_known_policies(self):
        assert isinstance(RecoveryPolicyFactory.create("propagate"), PropagatePolicy)
        assert isinstance(RecoveryPolicyFactory.create("IGNORE"), IgnorePolicy)

        policy = RecoveryPolicyFactory.create("max_failures", max_failures=7)
        assert isinstance(policy, MaxFailuresPolicy)
        assert policy.max_failures == 7

    def test_create_unknown_policy(self):
        with pytest.raises(UnsupportedTypeError) as exc_info:
            RecoveryPolicyFactory.create("retry")

        assert "Unsupported recovery policy: retry" in str(exc_info.value)
