"""
Curation — Workflow Tests
Tests submit/list/review/disclose end to end, listing degradation, and
the documented index race on stores without compare-and-set.
"""

import json
import threading
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from curation import (
    AesGcmScheme,
    CorruptIndex,
    CurationConfig,
    CurationWorkflow,
    DisclosureDenied,
    InvalidTransition,
    LocalAccountIdentity,
    MemoryStore,
    NotFound,
    ReversibleDemoScheme,
    ShieldedField,
    Status,
    StoreConflict,
    StoreUnavailable,
    Submission,
    Unauthorized,
    ValidationError,
    allow_list,
)


class StepClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start=1_700_000_000):
        self.now = start

    def __call__(self):
        self.now += 1
        return self.now


class GatedIndexStore(MemoryStore):
    """
    Non-atomic simulation: each submitting thread's index read inside the
    append (its second read of the index; the first is the pre-write check)
    waits until every thread has made that read, so all of them see the
    same index before any of them writes.
    """

    def __init__(self, parties=2, gate_on_read=2):
        super().__init__()
        self._barrier = threading.Barrier(parties, timeout=5)
        self._local = threading.local()
        self.gate_on_read = gate_on_read

    def get_data(self, key):
        value = super().get_data(key)
        if key == "tool_keys":
            reads = getattr(self._local, "reads", 0) + 1
            self._local.reads = reads
            if reads == self.gate_on_read:
                self._barrier.wait()
        return value


def grading_tool(**overrides):
    fields = dict(
        name="Gradescope",
        description="AI-assisted grading for written work",
        category="Grading",
        rating=4,
        usage=120,
    )
    fields.update(overrides)
    return Submission(**fields)


def new_workflow(store=None, **kwargs):
    kwargs.setdefault("clock", StepClock())
    return CurationWorkflow(store if store is not None else MemoryStore(), AesGcmScheme.generate(), **kwargs)


def test_end_to_end_submit_approve_disclose():
    """Submit → pending → approve by submitter → approved, blobs unchanged → disclose."""
    submitter = LocalAccountIdentity()
    workflow = new_workflow()

    record_id = workflow.submit(grading_tool(), submitter.current_address())
    assert record_id.startswith("tool-")

    listed = workflow.list_records()
    assert [r.id for r in listed] == [record_id]
    before = listed[0]
    assert before.status is Status.PENDING
    assert before.category == "Grading"
    assert before.shielded_rating not in ("4", "4.0")
    assert before.shielded_usage not in ("120", "120.0")

    workflow.approve(record_id, submitter.current_address())
    after = workflow.list_records()[0]
    assert after.status is Status.APPROVED
    assert after.shielded_rating == before.shielded_rating
    assert after.shielded_usage == before.shielded_usage
    assert after.submitter == before.submitter
    assert after.created_at == before.created_at

    session = workflow.new_session()
    assert workflow.request_disclosure(record_id, ShieldedField.RATING, submitter, session) == 4
    assert workflow.request_disclosure(record_id, ShieldedField.USAGE, submitter, session) == 120
    print("  [PASS] End-to-end submit/approve/disclose")


def test_second_transition_is_invalid():
    actor = LocalAccountIdentity().current_address()
    workflow = new_workflow()
    record_id = workflow.submit(grading_tool(), actor)
    workflow.reject(record_id, actor)
    for call in (workflow.approve, workflow.reject):
        try:
            call(record_id, actor)
            assert False, "terminal record should refuse"
        except InvalidTransition:
            pass
    assert workflow.get_record(record_id).status is Status.REJECTED
    print("  [PASS] Second transition -> InvalidTransition")


def test_non_submitter_is_unauthorized_and_record_unchanged():
    owner = LocalAccountIdentity().current_address()
    other = LocalAccountIdentity().current_address()
    store = MemoryStore()
    workflow = new_workflow(store)
    record_id = workflow.submit(grading_tool(), owner)
    raw_before = store.get_data(f"tool_{record_id}")

    for call in (workflow.approve, workflow.reject):
        try:
            call(record_id, other)
            assert False, "other actor should be refused"
        except Unauthorized:
            pass
    assert store.get_data(f"tool_{record_id}") == raw_before
    print("  [PASS] Non-submitter -> Unauthorized, record unchanged")


def test_moderator_policy():
    moderator = LocalAccountIdentity().current_address()
    workflow = new_workflow(policy=allow_list([moderator]))
    record_id = workflow.submit(grading_tool(), LocalAccountIdentity().current_address())
    assert workflow.approve(record_id, moderator).status is Status.APPROVED
    print("  [PASS] Pluggable review policy")


def test_validation_happens_before_any_write():
    store = MemoryStore()
    workflow = new_workflow(store)
    actor = LocalAccountIdentity().current_address()
    bad = [
        grading_tool(name=""),
        grading_tool(description="   "),
        grading_tool(category=""),
        grading_tool(category="Gaming"),
        grading_tool(rating=0),
        grading_tool(rating=6),
        grading_tool(rating=True),
        grading_tool(rating="4"),
        grading_tool(usage=-1),
        grading_tool(usage=float("nan")),
        grading_tool(usage=10_000_001),
    ]
    for submission in bad:
        try:
            workflow.submit(submission, actor)
            assert False, f"{submission} should be invalid"
        except ValidationError as e:
            assert e.problems
            assert e.to_dict()["kind"] == "validation_error"
    assert store.writes == 0
    assert workflow.list_records() == []
    print("  [PASS] Validation before any write")


def test_submit_requires_actor():
    store = MemoryStore()
    workflow = new_workflow(store)
    try:
        workflow.submit(grading_tool(), None)
        assert False, "anonymous submission should be refused"
    except Unauthorized:
        pass
    assert store.writes == 0
    print("  [PASS] Submission needs an actor")


def test_listing_skips_corrupt_records():
    """Index ["x", "y"] with y malformed lists only x."""
    store = MemoryStore()
    scheme = ReversibleDemoScheme()
    store.set_data("tool_keys", json.dumps(["x", "y"]).encode())
    store.set_data("tool_x", json.dumps({
        "name": "Seesaw",
        "description": "Student portfolios",
        "rating": scheme.encode(5),
        "usage": scheme.encode(300),
        "category": "Communication",
        "submitter": "0x0000000000000000000000000000000000000001",
        "timestamp": 1_700_000_000,
        "status": "pending",
    }).encode())
    store.set_data("tool_y", b"{ this is not json")

    workflow = CurationWorkflow(store, scheme)
    assert [r.id for r in workflow.list_records()] == ["x"]
    print("  [PASS] Listing skips corrupt record")


def test_listing_skips_dangling_ids_and_sorts_newest_first():
    store = MemoryStore()
    workflow = new_workflow(store)
    actor = LocalAccountIdentity().current_address()
    first = workflow.submit(grading_tool(name="First"), actor)
    second = workflow.submit(grading_tool(name="Second"), actor)
    workflow.adapter.append_to_index("ghost")

    assert [r.id for r in workflow.list_records()] == [second, first]
    try:
        workflow.get_record("ghost")
        assert False
    except NotFound:
        pass
    print("  [PASS] Listing order and dangling ids")


def test_listing_with_corrupt_index_is_empty():
    store = MemoryStore()
    store.set_data("tool_keys", b"not-an-array")
    assert new_workflow(store).list_records() == []
    print("  [PASS] Corrupt index lists nothing")


def test_unavailable_store_fails_whole_call():
    store = MemoryStore()
    workflow = new_workflow(store)
    store.available = False
    for call in (workflow.list_records, lambda: workflow.submit(grading_tool(), "0x1")):
        try:
            call()
            assert False, "should be unavailable"
        except StoreUnavailable:
            pass
    print("  [PASS] StoreUnavailable propagates")


def test_search_and_stats():
    actor = LocalAccountIdentity().current_address()
    workflow = new_workflow()
    quiz = workflow.submit(grading_tool(name="QuizMaker", category="Assessment"), actor)
    chat = workflow.submit(grading_tool(name="ClassChat", description="Messaging for classes", category="Communication"), actor)
    workflow.submit(grading_tool(name="Rubrics"), actor)
    workflow.approve(quiz, actor)
    workflow.reject(chat, actor)

    assert [r.id for r in workflow.search("quiz")] == [quiz]
    assert [r.id for r in workflow.search("MESSAGING")] == [chat]
    assert [r.id for r in workflow.search(category="Communication")] == [chat]
    assert len(workflow.search()) == 3
    assert workflow.search("quiz", category="Grading") == []

    assert workflow.stats() == {
        "total": 3,
        "approved": 1,
        "pending": 1,
        "rejected": 1,
        "categories": 5,
    }
    print("  [PASS] Search and stats")


def test_declined_disclosure_never_decodes():
    class CountingScheme(AesGcmScheme):
        decodes = 0

        def decode(self, blob):
            CountingScheme.decodes += 1
            return super().decode(blob)

    actor = LocalAccountIdentity()
    workflow = CurationWorkflow(MemoryStore(), CountingScheme.generate(), clock=StepClock())
    record_id = workflow.submit(grading_tool(), actor.current_address())
    declining = LocalAccountIdentity(approve=lambda message: False)
    try:
        workflow.request_disclosure(record_id, ShieldedField.RATING, declining, workflow.new_session())
        assert False, "declined signature should deny"
    except DisclosureDenied:
        pass
    assert CountingScheme.decodes == 0
    print("  [PASS] Declined disclosure never decodes")


def run_racing_submissions(store, atomic_append):
    store.set_data("tool_keys", json.dumps(["a"]).encode())
    workflow = CurationWorkflow(store, AesGcmScheme.generate(), atomic_append=atomic_append)
    actor = LocalAccountIdentity().current_address()
    ids, errors = [], []

    def submit(name):
        try:
            ids.append(workflow.submit(grading_tool(name=name), actor))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=submit, args=(n,)) for n in ("Left", "Right")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert not errors, errors
    assert len(ids) == 2
    return ids, json.loads(store.get_data("tool_keys"))


def test_concurrent_submissions_lose_an_index_update():
    """Without compare-and-set, racing submissions keep only one new id."""
    store = GatedIndexStore()
    ids, index = run_racing_submissions(store, atomic_append=False)

    assert index[0] == "a"
    assert len(index) == 2
    assert index[1] in ids
    # the losing record is still stored, just orphaned from the index
    orphan = (set(ids) - set(index)).pop()
    assert store.get_data(f"tool_{orphan}")
    print("  [PASS] Lost-update race reproduces without compare-and-set")


def test_compare_and_set_keeps_both_submissions():
    store = GatedIndexStore()
    ids, index = run_racing_submissions(store, atomic_append=True)
    assert index[0] == "a"
    assert sorted(index[1:]) == sorted(ids)
    print("  [PASS] Compare-and-set append keeps both ids")


def test_config_from_env():
    config = CurationConfig.from_env({
        "CURATION_MAX_RATING": "10",
        "CURATION_CATEGORIES": "Math, Science",
        "CURATION_VERIFY_SIGNATURES": "false",
        "CURATION_CHAIN_ID": "11155111",
    })
    assert config.max_rating == 10
    assert config.categories == ("Math", "Science")
    assert config.verify_signatures is False
    assert config.chain_id == 11155111
    assert config.index_key == "tool_keys"
    assert config.record_key("x") == "tool_x"

    workflow = new_workflow(config=config)
    assert workflow.disclosure.verify_signatures is False
    assert workflow.new_session().chain_id == 11155111
    print("  [PASS] Config from environment")


def test_disclosure_selects_the_named_field():
    """Field names given as strings pick their own blob; unknown names are refused."""
    actor = LocalAccountIdentity()
    workflow = new_workflow()
    record_id = workflow.submit(grading_tool(rating=4, usage=120), actor.current_address())
    session = workflow.new_session()

    assert workflow.request_disclosure(record_id, "rating", actor, session) == 4
    assert workflow.request_disclosure(record_id, "usage", actor, session) == 120
    signed_before = actor.signatures_issued
    for bad in ("ratting", "", None, "USAGE"):
        try:
            workflow.request_disclosure(record_id, bad, actor, session)
            assert False, f"{bad!r} should be refused"
        except ValidationError as e:
            assert e.kind == "validation_error"
    # nothing was signed for the refused names
    assert actor.signatures_issued == signed_before
    print("  [PASS] Disclosure selects the named field")


def test_submit_against_corrupt_index_writes_nothing():
    store = MemoryStore()
    store.set_data("tool_keys", b"{not json")
    writes_before = store.writes
    workflow = new_workflow(store)
    try:
        workflow.submit(grading_tool(), LocalAccountIdentity().current_address())
        assert False, "corrupt index should refuse the submission"
    except CorruptIndex:
        pass
    assert store.writes == writes_before
    assert [k for k in store.keys() if k != "tool_keys"] == []
    assert store.get_data("tool_keys") == b"{not json"
    print("  [PASS] Corrupt index refuses submission before any write")


def test_submit_surfaces_exhausted_index_retries():
    class ContendedStore(MemoryStore):
        def compare_and_set(self, key, expected, value):
            return False

    store = ContendedStore()
    workflow = new_workflow(store)
    try:
        workflow.submit(grading_tool(), LocalAccountIdentity().current_address())
        assert False, "exhausted retries should fail the submission"
    except StoreConflict:
        pass
    assert workflow.list_records() == []
    print("  [PASS] Exhausted index retries fail the submission")


if __name__ == "__main__":
    print("Testing workflow...\n")
    test_end_to_end_submit_approve_disclose()
    test_second_transition_is_invalid()
    test_non_submitter_is_unauthorized_and_record_unchanged()
    test_moderator_policy()
    test_validation_happens_before_any_write()
    test_submit_requires_actor()
    test_listing_skips_corrupt_records()
    test_listing_skips_dangling_ids_and_sorts_newest_first()
    test_listing_with_corrupt_index_is_empty()
    test_unavailable_store_fails_whole_call()
    test_search_and_stats()
    test_declined_disclosure_never_decodes()
    test_concurrent_submissions_lose_an_index_update()
    test_compare_and_set_keeps_both_submissions()
    test_config_from_env()
    test_disclosure_selects_the_named_field()
    test_submit_against_corrupt_index_writes_nothing()
    test_submit_surfaces_exhausted_index_retries()
    print(f"\n{'='*50}")
    print("All 18 workflow tests passed!")
