"""Core diff and merge engines. Free of I/O."""
