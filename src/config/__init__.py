"""Runtime configuration for the nudge Lambdas."""
