"""Authentication, authorization and security primitives."""
