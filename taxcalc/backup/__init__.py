from .store import BackupError, BackupStore, hash_password, verify_password

__all__ = ["BackupError", "BackupStore", "hash_password", "verify_password"]
