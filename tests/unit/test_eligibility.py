"""Tests for start_stop/engine/eligibility.py."""

import math
from datetime import timedelta

import pytest

from start_stop.config.settings import StartStopSettings
from start_stop.engine import eligibility
from start_stop.engine.eligibility import (
    ALREADY_ASSIGNED_COMMENT,
    PARENT_ISSUE_COMMENT,
    get_available_opened_pull_requests,
    is_parent_issue,
    resolve_task_limit,
)
from start_stop.exceptions import EligibilityError, ExternalServiceError
from start_stop.models.domain import HttpStatusCode, IssueState, PullRequest, Review, User


def _pull_request(number: int, created_at=None) -> PullRequest:
    return PullRequest(
        number=number,
        author="user1",
        body="Resolves #1",
        state="open",
        organization="ubiquity",
        url=f"https://github.com/ubiquity/test-repo/pull/{number}",
        created_at=created_at,
    )


class TestResolveTaskLimit:
    """Tests for role-based limits."""

    def test_configured_role(self):
        assert resolve_task_limit("member", {"admin": 6, "member": 4, "contributor": 2}) == 4

    def test_role_lookup_is_case_insensitive(self):
        assert resolve_task_limit("Admin", {"admin": 6, "contributor": 2}) == 6

    @pytest.mark.parametrize(
        "limits",
        [
            {"admin": 6, "member": 4, "contributor": 2},
            {"admin": math.inf, "member": 10},
            {"collaborator": 0, "member": 3},
        ],
    )
    def test_unmapped_role_gets_smallest_limit(self, limits):
        """Should fall back to the minimum of all configured limits."""
        assert resolve_task_limit("billing_manager", limits) == min(limits.values())


class TestIsParentIssue:
    def test_checklist_of_issues(self):
        assert is_parent_issue("Tasks:\n- [ ] #12\n- [x] #13") is True

    def test_plain_body(self):
        assert is_parent_issue("Fix the login page") is False

    def test_empty_body(self):
        assert is_parent_issue("") is False
        assert is_parent_issue(None) is False


class TestGetAvailableOpenedPullRequests:
    """Tests for pull requests that free a task slot."""

    @pytest.mark.asyncio
    async def test_approved_by_reviewer_with_authority(self, context, tracker):
        tracker.get_opened_pull_requests.return_value = [_pull_request(5)]
        tracker.get_pull_request_reviews.return_value = [
            Review(state="APPROVED", reviewer="maintainer", author_association="MEMBER")
        ]

        available = await get_available_opened_pull_requests(context, "ubiquity", "user1")

        assert [pr.number for pr in available] == [5]

    @pytest.mark.asyncio
    async def test_approval_without_authority_does_not_count(self, context, tracker):
        tracker.get_opened_pull_requests.return_value = [_pull_request(5)]
        tracker.get_pull_request_reviews.return_value = [
            Review(state="APPROVED", reviewer="passerby", author_association="CONTRIBUTOR")
        ]

        assert await get_available_opened_pull_requests(context, "ubiquity", "user1") == []

    @pytest.mark.asyncio
    async def test_unreviewed_past_review_delay(self, context, tracker, now):
        """Should count unreviewed pull requests older than the tolerance."""
        tracker.get_opened_pull_requests.return_value = [
            _pull_request(5, created_at=now - timedelta(days=2)),
            _pull_request(6, created_at=now - timedelta(hours=2)),
        ]

        available = await get_available_opened_pull_requests(context, "ubiquity", "user1")

        assert [pr.number for pr in available] == [5]

    @pytest.mark.asyncio
    async def test_zero_tolerance_disables_the_check(self, context, tracker):
        context.settings = StartStopSettings(review_delay_tolerance="0 Days")

        assert await get_available_opened_pull_requests(context, "ubiquity", "user1") == []
        tracker.get_opened_pull_requests.assert_not_awaited()


class TestStart:
    """Tests for the /start preconditions."""

    @pytest.mark.asyncio
    async def test_assigns_sender_and_posts_comment(self, context, tracker, issue, sender):
        result = await eligibility.start(context, issue, sender, [])

        assert result.status == HttpStatusCode.OK
        assert result.output == "Task assigned successfully"
        tracker.add_assignees.assert_awaited_once_with(issue.repository, issue.number, ["user1"])
        comment = tracker.add_comment.await_args.args[2]
        assert "<tr><td>Deadline</td><td>Tue, Jan 2, 4:04 PM UTC</td></tr>" in comment

    @pytest.mark.asyncio
    async def test_disabled_command(self, context, tracker, issue, sender):
        context.settings = StartStopSettings(disabled_commands=["start"])

        with pytest.raises(EligibilityError, match="The '/start' command is disabled for this repository."):
            await eligibility.start(context, issue, sender, [])
        tracker.add_assignees.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_closed_issue(self, context, tracker, make_issue, sender):
        with pytest.raises(EligibilityError, match="Issue is closed"):
            await eligibility.start(context, make_issue(state=IssueState.CLOSED), sender, [])
        tracker.add_assignees.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_parent_issue(self, context, tracker, make_issue, sender):
        """Should refuse parent issues and point to the child issues."""
        issue = make_issue(body="- [ ] #2\n- [ ] #3")

        with pytest.raises(EligibilityError, match="Issue is a parent issue"):
            await eligibility.start(context, issue, sender, [])
        tracker.add_comment.assert_awaited_once_with(issue.repository, issue.number, PARENT_ISSUE_COMMENT)
        tracker.add_assignees.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_already_assigned(self, context, tracker, make_issue, sender):
        issue = make_issue(assignees=[User(id=2, login="user2")])

        with pytest.raises(EligibilityError, match="Issue is already assigned"):
            await eligibility.start(context, issue, sender, [])
        tracker.add_comment.assert_awaited_once_with(issue.repository, issue.number, ALREADY_ASSIGNED_COMMENT)

    @pytest.mark.asyncio
    async def test_missing_wallet(self, context, tracker, wallets, issue, sender):
        """Should post the empty wallet text when a wallet is required."""
        wallets.get_wallet_by_user_id.return_value = None

        with pytest.raises(EligibilityError, match="No wallet address found"):
            await eligibility.start(context, issue, sender, [])
        tracker.add_comment.assert_awaited_once_with(
            issue.repository, issue.number, context.settings.empty_wallet_text
        )

    @pytest.mark.asyncio
    async def test_missing_wallet_allowed_when_not_required(self, context, tracker, wallets, issue, sender):
        context.settings = StartStopSettings(start_requires_wallet=False)
        wallets.get_wallet_by_user_id.return_value = None

        result = await eligibility.start(context, issue, sender, [])

        assert result.status == HttpStatusCode.OK

    @pytest.mark.asyncio
    @pytest.mark.parametrize("labels", [["Time: <1 Hour"], ["Price: 200 USD"], []])
    async def test_missing_price_or_duration(self, context, tracker, make_issue, sender, labels):
        with pytest.raises(EligibilityError, match="No price label is set to calculate the duration"):
            await eligibility.start(context, make_issue(labels=labels), sender, [])
        tracker.add_assignees.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unmapped_role_at_smallest_limit(self, context, tracker, make_issue, issue, sender):
        """Should apply the smallest limit to roles missing from the config."""
        context.settings = StartStopSettings(max_concurrent_tasks={"admin": 6, "member": 4, "contributor": 2})
        tracker.get_user_role.return_value = "billing_manager"
        tracker.get_assigned_issues.return_value = [make_issue(number=10), make_issue(number=11)]

        with pytest.raises(EligibilityError) as exc_info:
            await eligibility.start(context, issue, sender, [])

        assert exc_info.value.message == "Too many assigned issues, you have reached your max limit of 2 issues."
        tracker.add_assignees.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_available_pull_requests_free_slots(self, context, tracker, make_issue, issue, sender):
        """Should not count tasks whose pull requests are approved."""
        tracker.get_assigned_issues.return_value = [make_issue(number=10), make_issue(number=11)]
        tracker.get_opened_pull_requests.return_value = [_pull_request(5)]
        tracker.get_pull_request_reviews.return_value = [
            Review(state="APPROVED", reviewer="maintainer", author_association="OWNER")
        ]

        result = await eligibility.start(context, issue, sender, [])

        assert result.status == HttpStatusCode.OK

    @pytest.mark.asyncio
    async def test_assigns_teammates(self, context, tracker, issue, sender):
        result = await eligibility.start(context, issue, sender, ["user2", "user3", "user1", "user2"])

        assert result.status == HttpStatusCode.OK
        tracker.add_assignees.assert_awaited_once_with(
            issue.repository, issue.number, ["user1", "user2", "user3"]
        )

    @pytest.mark.asyncio
    async def test_unknown_teammate_is_dropped(self, context, tracker, issue, sender):
        tracker.get_user.side_effect = lambda login: None if login == "ghost" else User(id=7, login=login)

        await eligibility.start(context, issue, sender, ["ghost", "user2"])

        tracker.add_assignees.assert_awaited_once_with(issue.repository, issue.number, ["user1", "user2"])

    @pytest.mark.asyncio
    async def test_teammate_over_limit(self, context, tracker, make_issue, issue, sender):
        """Should name the teammate who reached the limit."""
        busy = [make_issue(number=10), make_issue(number=11)]
        tracker.get_assigned_issues.side_effect = lambda org, login: busy if login == "user2" else []

        with pytest.raises(EligibilityError) as exc_info:
            await eligibility.start(context, issue, sender, ["user2"])

        assert exc_info.value.message.startswith("@user2: Too many assigned issues")
        tracker.add_assignees.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_assignment_failure_propagates(self, context, tracker, issue, sender):
        tracker.add_assignees.side_effect = ExternalServiceError("Adding the assignee failed", status_code=422)

        with pytest.raises(ExternalServiceError):
            await eligibility.start(context, issue, sender, [])


class TestStop:
    """Tests for the /stop preconditions."""

    @pytest.mark.asyncio
    async def test_unassigns_and_closes_pull_requests(
        self, context, tracker, make_issue, sender, make_cross_reference, async_items
    ):
        issue = make_issue(assignees=[sender])
        tracker.iter_cross_references.side_effect = lambda repo, number: async_items([make_cross_reference(2)])

        result = await eligibility.stop(context, issue, sender)

        assert result.status == HttpStatusCode.OK
        assert result.output == "Task unassigned successfully"
        tracker.remove_assignees.assert_awaited_once_with(issue.repository, issue.number, ["user1"])
        tracker.close_pull_request.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_assigned(self, context, tracker, make_issue, sender):
        issue = make_issue(assignees=[User(id=2, login="user2")])

        with pytest.raises(EligibilityError, match="You are not assigned to this task"):
            await eligibility.stop(context, issue, sender)
        tracker.remove_assignees.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_assigned_checked_before_disabled(self, context, issue, sender):
        context.settings = StartStopSettings(disabled_commands=["stop"])

        with pytest.raises(EligibilityError, match="You are not assigned to this task"):
            await eligibility.stop(context, issue, sender)

    @pytest.mark.asyncio
    async def test_disabled_command(self, context, tracker, make_issue, sender):
        context.settings = StartStopSettings(disabled_commands=["stop"])

        with pytest.raises(EligibilityError, match="The '/stop' command is disabled for this repository."):
            await eligibility.stop(context, make_issue(assignees=[sender]), sender)
        tracker.remove_assignees.assert_not_awaited()
