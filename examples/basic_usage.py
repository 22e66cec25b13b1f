"""
Curation — Basic Usage Example

Demonstrates submitting a tool with shielded rating and usage, reviewing
it, and revealing a shielded value through a signed challenge.
"""

import sys
import tempfile
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from curation import (
    AesGcmScheme,
    CurationWorkflow,
    DisclosureDenied,
    FileStore,
    LocalAccountIdentity,
    ShieldedField,
    Submission,
    configure_logging,
)


def main():
    configure_logging("WARNING")

    print("=" * 50)
    print("  Curation — Shielded Tool Review")
    print("=" * 50)

    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileStore(tmpdir)
        workflow = CurationWorkflow(store, AesGcmScheme.generate())
        teacher = LocalAccountIdentity()

        record_id = workflow.submit(
            Submission(
                name="Gradescope",
                description="AI-assisted grading for written work",
                category="Grading",
                rating=4,
                usage=120,
            ),
            teacher.current_address(),
        )

        record = workflow.get_record(record_id)
        print(f"\nSubmitted {record.id} [{record.status.value}]")
        print(f"  Rating blob: {record.shielded_rating[:30]}...")
        print(f"  Usage blob:  {record.shielded_usage[:30]}...")

        workflow.approve(record_id, teacher.current_address())
        print(f"\nAfter review: {workflow.get_record(record_id).status.value}")
        print(f"Stats: {workflow.stats()}")

        # Reveal the rating: the wallet signs a fresh challenge first
        session = workflow.new_session()
        rating = workflow.request_disclosure(record_id, ShieldedField.RATING, teacher, session)
        print(f"\nDisclosed rating: {rating}/5")

        # A viewer who declines to sign sees nothing
        shy_viewer = LocalAccountIdentity(approve=lambda message: False)
        try:
            workflow.request_disclosure(record_id, ShieldedField.USAGE, shy_viewer, session)
            print("  ERROR: Should have been denied!")
        except DisclosureDenied as e:
            print(f"Declined signature: {e.kind}")


if __name__ == "__main__":
    main()
