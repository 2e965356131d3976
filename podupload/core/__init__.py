"""Core building blocks of the upload subsystem."""
