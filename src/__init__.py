"""Reading analytics core."""
