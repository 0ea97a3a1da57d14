"""
Integration Tests Package

End-to-end sessions on virtual time: topology, gestures, sampling and the
final report wired together through InstrumentationSession.

TEST AXIOMS:
=============
1. Determinism: same script + seed = byte-identical report text
2. Attribution: a sample belongs to the activity current when it closes
3. Explicit end: the report is produced exactly once
"""
