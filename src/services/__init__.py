"""Business logic services used by handlers.

Services are imported lazily by handlers so boto3 and httpx clients are only
built when a route actually needs them.
"""
