import logging
from typing import Any, Dict, Iterable, List

from tqdm import tqdm

logger = logging.getLogger(__name__)


async def collect_top_tracks(client, artist_ids: Iterable[str], *, per_artist: int = 5) -> List[str]:
    """Return the top-track URIs of each artist, de-duplicated, in artist order."""

    artist_ids = [str(a).strip() for a in (artist_ids or []) if str(a).strip()]
    uris: List[str] = []
    seen = set()

    with tqdm(total=len(artist_ids), desc="Collecting top tracks", unit="artist") as pbar:
        for artist_id in artist_ids:
            payload = await client.get_artists_top_tracks(artist_id)
            tracks = payload.get("tracks") or []
            for track in tracks[:max(0, int(per_artist))]:
                uri = (track or {}).get("uri")
                if uri and uri not in seen:
                    seen.add(uri)
                    uris.append(uri)
            pbar.update(1)

    return uris


async def build_playlist_from_artists(
    client,
    name: str,
    artist_ids: Iterable[str],
    *,
    per_artist: int = 5,
    public: bool = False,
) -> Dict[str, Any]:
    """Create a playlist holding the top tracks of the given artists."""

    name = (name or "").strip()
    if not name:
        raise ValueError("Playlist name is required")

    uris = await collect_top_tracks(client, artist_ids, per_artist=per_artist)

    me = await client.me()
    user_id = me.get("id")
    if not user_id:
        raise ValueError("Could not determine the current Spotify user id")

    playlist = await client.create_playlist(
        user_id,
        name,
        public=public,
        description="Built from your top artists",
    )
    playlist_id = playlist.get("id")
    if uris:
        await client.add_items_to_playlist(playlist_id, uris)

    logger.info("Created playlist %s with %d tracks", playlist_id, len(uris))
    return {
        "playlist_id": playlist_id,
        "url": (playlist.get("external_urls") or {}).get("spotify", ""),
        "track_count": len(uris),
    }
