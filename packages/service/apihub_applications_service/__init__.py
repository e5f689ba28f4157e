"""HTTP service exposing the API Hub applications core."""
