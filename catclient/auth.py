"""Identities of the player launching the game. Authentication itself is the job of an
external collaborator, the launcher only consumes the resulting identity and never
stores it.
"""

from uuid import UUID, uuid5
import platform

from typing import Optional


class LaunchIdentity:
    """The player's identity given to the game: its username, user id (UUID) and access
    token. These values are opaque to the launcher.
    """

    user_type = "mojang"

    __slots__ = "username", "user_id", "access_token"

    def __init__(self, username: str, user_id: str, access_token: str) -> None:
        self.username = username
        self.user_id = user_id
        self.access_token = access_token

    @property
    def uuid(self) -> str:
        """The user id as given on the game's command line, without hyphens.
        """
        return self.user_id.replace("-", "")

    def __repr__(self) -> str:
        # The access token is intentionally not displayed.
        return f"<{type(self).__name__} {self.username} {self.user_id}>"


class OfflineIdentity(LaunchIdentity):
    """Offline identity, this is quite contradictory but it's actually useful to simplify
    the start logic. It provides optional static username and UUID and derived ones when
    kept unspecified. The access token is empty.
    """

    __slots__ = tuple()

    def __init__(self, username: Optional[str], uuid: Optional[str]) -> None:
        namespace_hash = UUID("8df5a464-38de-11ec-aa66-3fd636ee2ed7")
        if uuid is not None and len(uuid.replace("-", "")) == 32:
            username = uuid.replace("-", "")[:8] if username is None else username[:16]
        elif username is None:
            uuid = uuid5(namespace_hash, platform.node()).hex
            username = uuid[:8]
        else:
            username = username[:16]
            uuid = uuid5(namespace_hash, username).hex
        super().__init__(username, uuid, "")
