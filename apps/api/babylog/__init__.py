"""BabyLog API package."""
