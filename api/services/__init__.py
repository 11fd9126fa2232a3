"""
API Services Layer.

Workflow orchestration behind the routes: load entities through the
``EntityStore``, run the authorization gate and the state machines,
commit, then audit and notify.
"""

from api.services import applications, auth, companies, jobs, users

__all__ = [
    "applications",
    "auth",
    "companies",
    "jobs",
    "users",
]
