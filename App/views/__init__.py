"""HTTP views. All endpoints live in the API v2 blueprint."""
