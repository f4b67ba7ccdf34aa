"""Task names understood by timeline workers.

- refresh_for_post: invalidate the audience of one new post
- bulk_refresh: invalidate (and optionally warm) every recently active user

Handlers live on RefreshOrchestrator; `RefreshOrchestrator.register` binds
them to a worker under these names.
"""

REFRESH_FOR_POST = "refresh_for_post"
BULK_REFRESH = "bulk_refresh"
