"""Sample submission graded by the test suite."""
