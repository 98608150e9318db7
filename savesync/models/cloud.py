"""
Cloud document models: game catalog, play sessions and save hashes.

Field names in ``to_dict`` output are the camelCase wire contract of the
JSON documents stored in the bucket.
"""
from typing import List, Optional

from ..utils.datetime_utils import EPOCH, format_timestamp, parse_timestamp, utc_now

CLOUD_METADATA_VERSION = 2


class CloudGameMetadata:
    """
    One game's cloud-visible summary inside the catalog document.
    """

    def __init__(self, game_id, title="", publisher="", image_key=None,
                 total_play_time=0, play_status="unplayed", tags=None,
                 last_played=None, cleared_at=None, current_chapter=None,
                 created_at=None, updated_at=None):
        """
        Initialize a CloudGameMetadata.

        Args:
            game_id: Stable identifier, unique within the catalog document
            title: Game title
            publisher: Publisher / brand name
            image_key: Object key of the cover image (optional)
            total_play_time: Accumulated play time in seconds
            play_status: Play status label (e.g. ``unplayed``, ``playing``, ``played``)
            tags: Iterable of tags; order is irrelevant and duplicates are dropped
            last_played: Last time the game was played (optional)
            cleared_at: Time the game was cleared (optional)
            current_chapter: Current chapter id (optional)
            created_at: Creation time (defaults to now)
            updated_at: Last modification time (defaults to created_at)
        """
        self.id = game_id
        self.title = title
        self.publisher = publisher
        self.image_key = image_key
        self.total_play_time = int(total_play_time or 0)
        self.play_status = play_status
        self.tags = set(tags or ())
        self.last_played = last_played
        self.cleared_at = cleared_at
        self.current_chapter = current_chapter
        self.created_at = created_at or utc_now()
        self.updated_at = updated_at or self.created_at

    def to_dict(self):
        """Serialize to dictionary"""
        data = {
            "id": self.id,
            "title": self.title,
            "publisher": self.publisher,
            "totalPlayTime": self.total_play_time,
            "playStatus": self.play_status,
            "tags": sorted(self.tags),
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }
        if self.image_key is not None:
            data["imageKey"] = self.image_key
        if self.last_played is not None:
            data["lastPlayed"] = format_timestamp(self.last_played)
        if self.cleared_at is not None:
            data["clearedAt"] = format_timestamp(self.cleared_at)
        if self.current_chapter is not None:
            data["currentChapter"] = self.current_chapter
        return data

    @classmethod
    def from_dict(cls, data):
        """Deserialize from dictionary"""
        created_at = parse_timestamp(data.get("createdAt")) or EPOCH
        return cls(
            game_id=data["id"],
            title=data.get("title", ""),
            publisher=data.get("publisher", ""),
            image_key=data.get("imageKey"),
            total_play_time=data.get("totalPlayTime", 0),
            play_status=data.get("playStatus", "unplayed"),
            tags=data.get("tags") or [],
            last_played=parse_timestamp(data.get("lastPlayed")),
            cleared_at=parse_timestamp(data.get("clearedAt")),
            current_chapter=data.get("currentChapter"),
            created_at=created_at,
            updated_at=parse_timestamp(data.get("updatedAt")) or created_at,
        )

    def __repr__(self):
        return f"CloudGameMetadata(id={self.id!r}, title={self.title!r})"


class CloudMetadata:
    """
    Catalog document aggregating every game's CloudGameMetadata.

    The store never deduplicates ``games``; callers must not insert two
    entries with the same id.
    """

    def __init__(self, games=None, version=CLOUD_METADATA_VERSION, updated_at=None):
        self.games: List[CloudGameMetadata] = list(games or [])
        self.version = version
        self.updated_at = updated_at or utc_now()

    def find_game(self, game_id) -> Optional[CloudGameMetadata]:
        """
        Get game entry by ID.

        Args:
            game_id: Game ID to search for

        Returns:
            CloudGameMetadata or None if not found
        """
        for game in self.games:
            if game.id == game_id:
                return game
        return None

    def to_dict(self):
        """Serialize to dictionary"""
        return {
            "version": self.version,
            "updatedAt": format_timestamp(self.updated_at),
            "games": [game.to_dict() for game in self.games],
        }

    @classmethod
    def from_dict(cls, data):
        """Deserialize from dictionary"""
        return cls(
            games=[CloudGameMetadata.from_dict(g) for g in (data.get("games") or [])],
            version=data.get("version", CLOUD_METADATA_VERSION),
            updated_at=parse_timestamp(data.get("updatedAt")) or EPOCH,
        )


class CloudSessionRecord:
    """
    One play session as seen by the cloud.
    """

    def __init__(self, session_id, played_at, duration=0, session_name=None, updated_at=None):
        """
        Initialize a CloudSessionRecord.

        Args:
            session_id: Identifier, unique within the per-game session list
            played_at: Time the session started
            duration: Session length in seconds
            session_name: Optional label
            updated_at: Last modification time (defaults to played_at)
        """
        self.id = session_id
        self.played_at = played_at
        self.duration = int(duration or 0)
        self.session_name = session_name
        self.updated_at = updated_at or played_at

    def to_dict(self):
        """Serialize to dictionary"""
        data = {
            "id": self.id,
            "playedAt": format_timestamp(self.played_at),
            "duration": self.duration,
            "updatedAt": format_timestamp(self.updated_at),
        }
        if self.session_name is not None:
            data["sessionName"] = self.session_name
        return data

    @classmethod
    def from_dict(cls, data):
        """Deserialize from dictionary"""
        played_at = parse_timestamp(data.get("playedAt")) or EPOCH
        return cls(
            session_id=data["id"],
            played_at=played_at,
            duration=data.get("duration", 0),
            session_name=data.get("sessionName"),
            updated_at=parse_timestamp(data.get("updatedAt")) or played_at,
        )

    def __repr__(self):
        return f"CloudSessionRecord(id={self.id!r}, duration={self.duration})"


class SaveHashMetadata:
    """
    Last-known content fingerprint of a game's save folder.
    """

    def __init__(self, hash_value, updated_at=None):
        self.hash = hash_value
        self.updated_at = updated_at or utc_now()

    def to_dict(self):
        """Serialize to dictionary"""
        return {
            "hash": self.hash,
            "updatedAt": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data):
        """Deserialize from dictionary"""
        return cls(
            hash_value=data.get("hash", ""),
            updated_at=parse_timestamp(data.get("updatedAt")) or EPOCH,
        )

    def __repr__(self):
        return f"SaveHashMetadata(hash={self.hash!r})"
