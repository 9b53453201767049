"""Background jobs run by the SAQ worker (``magiclink worker``)."""

from magiclink.tasks.maintenance import prune_expired_auth_records

__all__ = ["prune_expired_auth_records"]
