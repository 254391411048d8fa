from .discovery import ProfileDirectory, locate_profiles_root
from .profile_watcher import ProfileWatcher, WatchPhase, WatchState, reconcile_file

__all__ = [
    "ProfileDirectory",
    "locate_profiles_root",
    "ProfileWatcher",
    "WatchPhase",
    "WatchState",
    "reconcile_file",
]
