"""Poll a question set's generation status until it is terminal.

Usage: python scripts/poll_generation.py <teacher-uuid> <question-set-uuid>
"""
import sys
import time
import uuid

import httpx

from assessment_engine.kernel.identity.jwt import create_access_token

BASE = "http://localhost:8000/api/v1"


def main():
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(2)
    teacher_id = uuid.UUID(sys.argv[1])
    set_id = sys.argv[2]
    h = {"Authorization": f"Bearer {create_access_token(teacher_id)}"}

    for i in range(60):
        r = httpx.get(f"{BASE}/question-sets/{set_id}/status", headers=h, timeout=10)
        gs = r.json()
        live = gs.get("live_status") or "-"
        print(f"Poll {i+1}: status={gs['status']} live={live} questions={gs['questions_generated']}")
        if gs.get("webhook_overdue"):
            print("  worker finished but the webhook has not arrived yet")
        if gs["status"] in ("completed", "failed"):
            if gs["status"] == "failed":
                print(f"\nFAILED: {gs.get('failure_reason')}")
                sys.exit(1)
            r = httpx.get(f"{BASE}/question-sets/{set_id}", headers=h, timeout=10)
            for q in r.json()["questions"][:3]:
                print(f"\n{q['position'] + 1}. {q['text']}")
                for label, text in q["options"].items():
                    mark = "*" if label == q["correct_label"] else " "
                    print(f"  {mark} {label}) {text}")
            break
        time.sleep(5)


if __name__ == "__main__":
    main()
