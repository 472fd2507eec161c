"""Create a question set for a document and dispatch generation.

Usage: python scripts/trigger_generation.py <teacher-uuid> <document-ref> [question-count]

Signs a bearer token with the local SECRET_KEY, so run it against a dev server.
"""
import sys
import uuid

import httpx

from assessment_engine.kernel.identity.jwt import create_access_token

BASE = "http://localhost:8000/api/v1"


def main():
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(2)
    teacher_id = uuid.UUID(sys.argv[1])
    document_ref = sys.argv[2]
    count = int(sys.argv[3]) if len(sys.argv) > 3 else 10

    h = {"Authorization": f"Bearer {create_access_token(teacher_id)}"}
    c = httpx.Client(timeout=30)

    r = c.post(f"{BASE}/question-sets", json={
        "name": document_ref.rsplit("/", 1)[-1],
        "source_document_ref": document_ref,
    }, headers=h)
    if r.status_code != 201:
        print(f"Create failed: {r.status_code} {r.text[:300]}")
        sys.exit(1)
    set_id = r.json()["id"]
    print(f"Question set: {set_id}")

    r = c.post(f"{BASE}/question-sets/{set_id}/generate", json={"question_count": count}, headers=h)
    print(f"Dispatch: {r.status_code} {r.json()}")
    if r.status_code != 202:
        sys.exit(1)
    print(f"\nPoll with: python scripts/poll_generation.py {teacher_id} {set_id}")


if __name__ == "__main__":
    main()
