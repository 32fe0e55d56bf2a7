import pytest

from consents.state import UNSET, aggregate_status, can_transition, target_status


class TestTargetStatus:
	@pytest.mark.parametrize("prior,requested,expected", [
		(None, "accepted", "accepted"),
		(None, "rejected", "rejected"),
		(None, "withdrawn", "rejected"),
		("accepted", "rejected", "withdrawn"),
		("accepted", "withdrawn", "withdrawn"),
		("accepted", "accepted", "accepted"),
		("rejected", "rejected", "rejected"),
		("rejected", "withdrawn", "rejected"),
		("rejected", "accepted", "accepted"),
		("withdrawn", "rejected", "rejected"),
		("withdrawn", "withdrawn", "rejected"),
		("withdrawn", "accepted", "accepted"),
	])
	def test_declines_depend_on_prior_state(self, prior, requested, expected):
		assert target_status(prior, requested) == expected

	def test_unknown_status(self):
		with pytest.raises(ValueError):
			target_status(None, "maybe")


class TestTransitions:
	@pytest.mark.parametrize("prior,target", [
		(UNSET, "accepted"),
		(UNSET, "rejected"),
		("accepted", "withdrawn"),
		("accepted", "accepted"),
		("rejected", "accepted"),
		("rejected", "rejected"),
		("withdrawn", "accepted"),
		("withdrawn", "rejected"),
	])
	def test_allowed(self, prior, target):
		assert can_transition(prior, target)

	@pytest.mark.parametrize("prior,target", [
		(UNSET, "withdrawn"),
		("accepted", "rejected"),
		("rejected", "withdrawn"),
		("withdrawn", "withdrawn"),
	])
	def test_forbidden(self, prior, target):
		assert not can_transition(prior, target)

	def test_targets_are_always_reachable(self):
		for prior in (None, "accepted", "rejected", "withdrawn"):
			for requested in ("accepted", "rejected", "withdrawn"):
				assert can_transition(prior, target_status(prior, requested))


class TestAggregateStatus:
	@pytest.mark.parametrize("statuses,expected", [
		(["withdrawn", "withdrawn"], "revoked"),
		(["accepted", "accepted"], "accepted"),
		(["rejected", "rejected"], "rejected"),
		(["rejected", "withdrawn"], "rejected"),
		(["accepted", "rejected"], "partial"),
		(["accepted", "withdrawn"], "partial"),
		([], "partial"),
	])
	def test_aggregate(self, statuses, expected):
		assert aggregate_status(statuses) == expected
