"""Event store for user accounts.

One stream per user. Failed logins are events too, so an account under
password guessing grows its stream quickly; snapshots bound the replay.
"""

from __future__ import annotations

from typing import ClassVar
from uuid import UUID

from eventsourcing.application import Application

from storefront.domain.identity.user import User


class UserApplication(Application[UUID]):
    """Account persistence; PostgreSQL tables are prefixed ``users_``.

    Persistence is configured through the eventsourcing environment
    (``PERSISTENCE_MODULE`` or ``USERS_PERSISTENCE_MODULE``).
    """

    name = "users"
    snapshotting_intervals: ClassVar[dict[type, int]] = {User: 50}
