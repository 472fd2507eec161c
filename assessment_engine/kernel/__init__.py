"""
Kernel layer: persistent models, audit log, identity verification and the
error taxonomy shared by every engine.

Invariants:
- QuestionSet.status is only written through orchestration.state_machine
- AccessToken.consumed is only written by the attempt session manager
- AttemptResult rows are immutable once inserted
"""
