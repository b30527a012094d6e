"""pagetrail command line interface."""
