"""Rate limiting adapters.

The HTTP layer depends on the abstract limiter only, so the process-local
store can later be replaced by a shared one (e.g. Redis) when the site runs
more than one worker.
"""
