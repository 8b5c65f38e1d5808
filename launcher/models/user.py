"""
User model for authentication.

A single administrator account, stored as a password hash in the instance folder.
"""
import json
import logging
from pathlib import Path

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

logger = logging.getLogger(__name__)


class User(UserMixin):
    """User model for admin authentication"""

    _DEFAULT_ADMIN_USERNAME = "admin"

    _config_file = None
    _bootstrap = {}

    @classmethod
    def configure(cls, config_path, username=None, password=None, password_hash=None):
        """Point the model at its config file and remember bootstrap credentials."""
        cls._config_file = Path(config_path)
        cls._bootstrap = {
            "username": (username or cls._DEFAULT_ADMIN_USERNAME).strip(),
            "password": password,
            "password_hash": password_hash,
        }

    @classmethod
    def _get_config_path(cls):
        """Get path to user config file"""
        if cls._config_file is None:
            raise RuntimeError("User.configure() must be called before use")
        return cls._config_file

    @classmethod
    def _load_config(cls):
        """Load user configuration from file, bootstrapping it on first use"""
        config_path = cls._get_config_path()
        if config_path.exists():
            try:
                with open(config_path, "r") as f:
                    return json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Error loading admin config {config_path}: {e}")

        username = cls._bootstrap.get("username") or cls._DEFAULT_ADMIN_USERNAME
        password_hash = cls._bootstrap.get("password_hash")
        password = cls._bootstrap.get("password")

        if not password_hash:
            if not password:
                logger.warning("No admin password configured; bootstrapping '%s' with the default password. Change it now.", username)
                password = "admin"
            password_hash = generate_password_hash(password)

        cfg = {"username": username, "password_hash": password_hash}
        cls._save_config(cfg)
        return cfg

    @classmethod
    def _save_config(cls, config):
        """Save user configuration to file"""
        config_path = cls._get_config_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            json.dump(config, f, indent=2)

    @classmethod
    def get_by_username(cls, username):
        """Get user by username"""
        config = cls._load_config()
        if username and config.get("username") == username:
            user = User()
            user.id = username  # Flask-Login uses 'id' attribute
            user.username = username
            user.password_hash = config.get("password_hash")
            return user
        return None

    def check_password(self, password):
        """Check if password matches"""
        if not password or not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @classmethod
    def update_password(cls, username, new_password):
        """Update user password"""
        config = cls._load_config()
        if config.get("username") == username:
            config["password_hash"] = generate_password_hash(new_password)
            cls._save_config(config)
            return True
        return False
