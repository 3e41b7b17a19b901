"""
Lifecycle - Property-Based Testing Suite

Property-based testing using Hypothesis to explore plugin failure
combinations and check the supervisor's teardown and termination invariants.
"""
