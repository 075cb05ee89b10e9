"""Campus partnership management backend."""
