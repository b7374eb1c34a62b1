"""Supabase Storage implementation for uploaded images."""

from dataclasses import dataclass

from supabase import Client

from photo_booking.services.images import ImageStorage


@dataclass
class SupabaseImageStorage(ImageStorage):
    """Stores images in a public Supabase Storage bucket."""

    client: Client
    bucket: str = "photo-sessions"

    def upload(self, path: str, content: bytes, content_type: str) -> str:
        """Store the bytes at path and return the public URL."""
        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(
            path,
            content,
            {"content-type": content_type, "cache-control": "3600", "upsert": "false"},
        )
        return bucket.get_public_url(path)
