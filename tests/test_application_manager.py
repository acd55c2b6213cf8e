"""Submission, decisions, acceptance cascade and the withdrawal protocol."""

from datetime import date

import pytest

from conftest import STAFF, sponsor, student
from app.core.enums import ApplicationStatus, OpportunityStatus
from app.core.exceptions import (
    AlreadyFinalized,
    AlreadyRequested,
    DuplicateApplication,
    IneligibleLevel,
    InvalidTransition,
    NotFound,
    NotOpen,
    PermissionDenied,
    QuotaExceeded,
)


def test_submit_creates_pending_application(placement, post_opportunity) -> None:
    opp = post_opportunity(level="Basic", target_subject="CS", slots=1)
    app = placement.applications.submit(student("S2"), opp.id)

    assert app.status == ApplicationStatus.PENDING
    assert app.withdrawal_requested is False
    assert placement.opportunities.get(opp.id).applicant_ids == ["S2"]
    assert [a.opportunity_id for a in placement.applications.by_student("S2")] == [opp.id]


def test_duplicate_submission_is_rejected(placement, post_opportunity) -> None:
    opp = post_opportunity()
    placement.applications.submit(student("S2"), opp.id)
    with pytest.raises(DuplicateApplication):
        placement.applications.submit(student("S2"), opp.id)
    assert len(placement.applications.by_student("S2")) == 1


def test_quota_blocks_fourth_application(placement, post_opportunity) -> None:
    opps = [post_opportunity(sponsor_id="SP1" if i < 3 else "SP2", title=f"T{i}") for i in range(4)]
    for opp in opps[:3]:
        placement.applications.submit(student("S1"), opp.id)
    placement.drain_changes()

    with pytest.raises(QuotaExceeded):
        placement.applications.submit(student("S1"), opps[3].id)
    assert len(placement.applications.by_student("S1")) == 3
    assert placement.opportunities.get(opps[3].id).applicant_ids == []
    assert len(placement.changes) == 0


def test_unsuccessful_applications_free_quota(placement, post_opportunity) -> None:
    opps = [post_opportunity(sponsor_id="SP1" if i < 3 else "SP2", title=f"T{i}") for i in range(4)]
    for opp in opps[:3]:
        placement.applications.submit(student("S1"), opp.id)
    placement.applications.decide(sponsor("SP1"), ("S1", opps[0].id), ApplicationStatus.UNSUCCESSFUL)

    placement.applications.submit(student("S1"), opps[3].id)
    assert placement.applications.active_count_for("S1") == 3


def test_junior_cannot_apply_above_basic(placement, post_opportunity) -> None:
    opp = post_opportunity(level="Intermediate")
    with pytest.raises(IneligibleLevel):
        placement.applications.submit(student("S2"), opp.id)
    placement.applications.submit(student("S1"), opp.id)


@pytest.mark.parametrize(
    "overrides",
    [
        {"opening_date": date(2025, 3, 16)},
        {"closing_date": date(2025, 3, 14), "opening_date": date(2025, 3, 1)},
    ],
)
def test_closed_window_is_not_open(placement, post_opportunity, overrides) -> None:
    opp = post_opportunity(**overrides)
    with pytest.raises(NotOpen):
        placement.applications.submit(student("S1"), opp.id)


def test_hidden_or_pending_posting_is_not_open(placement, post_opportunity) -> None:
    pending = post_opportunity(approve=False)
    with pytest.raises(NotOpen):
        placement.applications.submit(student("S1"), pending.id)

    hidden = post_opportunity(title="Hidden")
    placement.opportunities.toggle_visibility(sponsor("SP1"), hidden.id)
    with pytest.raises(NotOpen):
        placement.applications.submit(student("S1"), hidden.id)


def test_duplicate_is_checked_before_quota(placement, post_opportunity) -> None:
    opps = [post_opportunity(title=f"T{i}") for i in range(3)]
    for opp in opps:
        placement.applications.submit(student("S1"), opp.id)
    with pytest.raises(DuplicateApplication):
        placement.applications.submit(student("S1"), opps[0].id)


def test_unknown_student_or_opportunity(placement, post_opportunity) -> None:
    opp = post_opportunity()
    with pytest.raises(NotFound):
        placement.applications.submit(student("nobody"), opp.id)
    with pytest.raises(NotFound):
        placement.applications.submit(student("S1"), "OPP9999")


def test_decide_successful_then_accept_fills(placement, post_opportunity) -> None:
    opp = post_opportunity(slots=1)
    placement.applications.submit(student("S2"), opp.id)

    decided = placement.applications.decide(sponsor("SP1"), ("S2", opp.id), ApplicationStatus.SUCCESSFUL)
    assert decided.status == ApplicationStatus.SUCCESSFUL

    assert placement.applications.accept(student("S2"), ("S2", opp.id)) is True
    assert placement.applications.get(("S2", opp.id)).status == ApplicationStatus.ACCEPTED
    assert placement.applications.accepted_count_for(opp.id) == 1
    assert placement.opportunities.get(opp.id).status == OpportunityStatus.FILLED


def test_decide_rules(placement, post_opportunity) -> None:
    opp = post_opportunity()
    key = ("S1", opp.id)
    placement.applications.submit(student("S1"), opp.id)

    with pytest.raises(PermissionDenied):
        placement.applications.decide(sponsor("SP2"), key, ApplicationStatus.SUCCESSFUL)
    with pytest.raises(InvalidTransition):
        placement.applications.decide(sponsor("SP1"), key, ApplicationStatus.ACCEPTED)
    with pytest.raises(InvalidTransition):
        placement.applications.decide(sponsor("SP1"), key, "Maybe")

    placement.applications.decide(sponsor("SP1"), key, "unsuccessful")
    with pytest.raises(AlreadyFinalized):
        placement.applications.decide(sponsor("SP1"), key, ApplicationStatus.SUCCESSFUL)


def test_accept_requires_successful(placement, post_opportunity) -> None:
    opp = post_opportunity()
    placement.applications.submit(student("S1"), opp.id)
    placement.drain_changes()
    assert placement.applications.accept(student("S1"), ("S1", opp.id)) is False
    assert placement.applications.get(("S1", opp.id)).status == ApplicationStatus.PENDING
    assert len(placement.changes) == 0


def test_accept_only_by_the_applicant(placement, post_opportunity) -> None:
    opp = post_opportunity()
    placement.applications.submit(student("S1"), opp.id)
    placement.applications.decide(sponsor("SP1"), ("S1", opp.id), ApplicationStatus.SUCCESSFUL)
    with pytest.raises(PermissionDenied):
        placement.applications.accept(student("S2"), ("S1", opp.id))


def test_accept_withdraws_other_active_applications(placement, post_opportunity) -> None:
    a = post_opportunity(title="A", slots=2)
    b = post_opportunity(title="B")
    c = post_opportunity(title="C")
    for opp in (a, b, c):
        placement.applications.submit(student("S1"), opp.id)
    placement.applications.decide(sponsor("SP1"), ("S1", a.id), ApplicationStatus.SUCCESSFUL)
    placement.applications.decide(sponsor("SP1"), ("S1", b.id), ApplicationStatus.SUCCESSFUL)
    placement.applications.decide(sponsor("SP1"), ("S1", c.id), ApplicationStatus.UNSUCCESSFUL)
    placement.drain_changes()

    assert placement.applications.accept(student("S1"), ("S1", a.id)) is True

    remaining = {x.opportunity_id: x.status for x in placement.applications.by_student("S1")}
    assert remaining == {a.id: ApplicationStatus.ACCEPTED, c.id: ApplicationStatus.UNSUCCESSFUL}
    assert placement.applications.by_opportunity(b.id) == []
    assert placement.opportunities.get(b.id).applicant_ids == []
    # slots=2, one accepted: still open
    assert placement.opportunities.get(a.id).status == OpportunityStatus.APPROVED

    actions = [(c_.entity_id, c_.action, c_.removed) for c_ in placement.drain_changes()]
    assert actions == [
        (f"{a.id}:S1", "ACCEPTED", False),
        (f"{b.id}:S1", "WITHDRAWN_ON_ACCEPT", True),
    ]


def test_at_most_one_accepted_per_student(placement, post_opportunity) -> None:
    a = post_opportunity(title="A")
    b = post_opportunity(title="B")
    placement.applications.submit(student("S1"), a.id)
    placement.applications.submit(student("S1"), b.id)
    placement.applications.decide(sponsor("SP1"), ("S1", a.id), ApplicationStatus.SUCCESSFUL)
    assert placement.applications.accept(student("S1"), ("S1", a.id)) is True
    # b was withdrawn by the cascade; accepting it again is impossible
    with pytest.raises(NotFound):
        placement.applications.accept(student("S1"), ("S1", b.id))

    accepted = [x for x in placement.applications.by_student("S1") if x.status == ApplicationStatus.ACCEPTED]
    assert len(accepted) == 1


def test_accept_refused_while_withdrawal_pending(placement, post_opportunity) -> None:
    opp = post_opportunity()
    key = ("S1", opp.id)
    placement.applications.submit(student("S1"), opp.id)
    placement.applications.decide(sponsor("SP1"), key, ApplicationStatus.SUCCESSFUL)
    placement.applications.request_withdrawal(student("S1"), key)
    assert placement.applications.accept(student("S1"), key) is False


def test_withdrawal_approved_removes_everywhere(placement, post_opportunity) -> None:
    opp = post_opportunity()
    key = ("S2", opp.id)
    placement.applications.submit(student("S2"), opp.id)
    flagged = placement.applications.request_withdrawal(student("S2"), key)
    assert flagged.withdrawal_requested is True
    assert flagged.status == ApplicationStatus.PENDING
    assert [a.key for a in placement.applications.all_withdrawal_requests()] == [key]

    placement.applications.approve_withdrawal(STAFF, key)
    assert placement.applications.by_student("S2") == []
    assert placement.applications.by_opportunity(opp.id) == []
    assert placement.applications.all_withdrawal_requests() == []


def test_withdrawal_request_rules(placement, post_opportunity) -> None:
    opp = post_opportunity()
    key = ("S1", opp.id)
    placement.applications.submit(student("S1"), opp.id)
    placement.applications.request_withdrawal(student("S1"), key)
    with pytest.raises(AlreadyRequested):
        placement.applications.request_withdrawal(student("S1"), key)

    other = post_opportunity(title="Other")
    placement.applications.submit(student("S1"), other.id)
    placement.applications.decide(sponsor("SP1"), ("S1", other.id), ApplicationStatus.UNSUCCESSFUL)
    with pytest.raises(InvalidTransition):
        placement.applications.request_withdrawal(student("S1"), ("S1", other.id))


def test_approve_withdrawal_needs_request_and_staff(placement, post_opportunity) -> None:
    opp = post_opportunity()
    key = ("S1", opp.id)
    placement.applications.submit(student("S1"), opp.id)
    with pytest.raises(InvalidTransition):
        placement.applications.approve_withdrawal(STAFF, key)
    placement.applications.request_withdrawal(student("S1"), key)
    with pytest.raises(PermissionDenied):
        placement.applications.approve_withdrawal(sponsor("SP1"), key)


def test_reject_withdrawal_keeps_status_and_is_idempotent(placement, post_opportunity) -> None:
    opp = post_opportunity()
    key = ("S1", opp.id)
    placement.applications.submit(student("S1"), opp.id)
    placement.applications.decide(sponsor("SP1"), key, ApplicationStatus.SUCCESSFUL)
    placement.applications.request_withdrawal(student("S1"), key)
    placement.drain_changes()

    once = placement.applications.reject_withdrawal(STAFF, key)
    twice = placement.applications.reject_withdrawal(STAFF, key)
    assert once == twice
    assert twice.withdrawal_requested is False
    assert twice.status == ApplicationStatus.SUCCESSFUL
    assert len(placement.drain_changes()) == 1


def test_withdrawing_accepted_placement_reopens_filled(placement, post_opportunity) -> None:
    opp = post_opportunity(slots=1)
    key = ("S1", opp.id)
    placement.applications.submit(student("S1"), opp.id)
    placement.applications.decide(sponsor("SP1"), key, ApplicationStatus.SUCCESSFUL)
    placement.applications.accept(student("S1"), key)
    assert placement.opportunities.get(opp.id).status == OpportunityStatus.FILLED

    placement.applications.request_withdrawal(student("S1"), key)
    placement.applications.approve_withdrawal(STAFF, key)

    reopened = placement.opportunities.get(opp.id)
    assert reopened.status == OpportunityStatus.APPROVED
    assert placement.applications.accepted_count_for(opp.id) == 0
    # the freed slot can be taken again
    placement.applications.submit(student("S2"), opp.id)
