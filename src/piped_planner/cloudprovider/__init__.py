"""Cloud provider helpers consumed by planners."""
