"""Build the backend and identity collaborators from settings."""

from typing import Tuple

from .backend import Backend, YamlBackend
from .config import Settings
from .identity import Identity, LocalIdentity
from .supabase_backend import SupabaseBackend, SupabaseIdentity


def connect(settings: Settings) -> Tuple[Backend, Identity]:
    """Shared collaborators; call backend.for_session() before acting as a user."""
    if settings.KMCARS_BACKEND == "yaml":
        backend = YamlBackend(settings.KMCARS_DATA_FILE)
        return backend, LocalIdentity(backend)

    backend = SupabaseBackend.connect(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
    return backend, SupabaseIdentity(backend.client_factory)
