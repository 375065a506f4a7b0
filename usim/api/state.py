from __future__ import annotations

from dataclasses import dataclass

from usim.api.auth import Authenticator, default_authenticator
from usim.config import Settings
from usim.events import EventDispatcher
from usim.screens.registry import ScreenResolver
from usim.state import UIStateStore
from usim.storage import StorageSigner
from usim.uploads import TemporaryUploadManager, TemporaryUploadRepo


@dataclass
class AppState:
    settings: Settings
    ui_state: UIStateStore
    signer: StorageSigner
    resolver: ScreenResolver
    dispatcher: EventDispatcher
    uploads: TemporaryUploadManager
    authenticator: Authenticator

    @classmethod
    def from_settings(cls, settings: Settings, *, authenticator: Authenticator | None = None) -> AppState:
        ui_state = UIStateStore(settings.ui_state_ttl_seconds)
        signer = StorageSigner(settings.app_key)
        resolver = ScreenResolver(
            settings.screens_namespace,
            settings.screens_path,
            state=ui_state,
            signer=signer,
            login_url=settings.login_url,
        )
        uploads = TemporaryUploadManager(
            settings.upload_root,
            TemporaryUploadRepo(settings.upload_db_path),
            ttl_hours=settings.temporary_upload_ttl_hours,
            max_size_mb=settings.upload_max_size_mb,
            allowed_types=settings.upload_allowed_types,
        )
        return cls(
            settings=settings,
            ui_state=ui_state,
            signer=signer,
            resolver=resolver,
            dispatcher=EventDispatcher(resolver, signer),
            uploads=uploads,
            authenticator=authenticator or default_authenticator(settings),
        )
