from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
import logging

logger = logging.getLogger(__name__)


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'

    def ready(self):
        """
        Perform startup validation checks when Django initializes.

        The role catalog is built here so that an inconsistent role table
        stops the process before it answers any role check.
        """
        self._validate_security_settings()
        self._validate_roles_settings()
        self._validate_role_catalog()

        logger.info("All startup validations passed")

    def _validate_security_settings(self):
        """Validate general security settings."""
        debug = getattr(settings, 'DEBUG', False)
        secret_key = getattr(settings, 'SECRET_KEY', None)

        if not secret_key:
            raise ImproperlyConfigured(
                "SECRET_KEY must be set in environment variables. "
                "Generate with: "
                "python -c \"import secrets; print(secrets.token_urlsafe(50))\""
            )

        if not debug and 'insecure' in secret_key.lower():
            logger.warning(
                "SECRET_KEY appears to be a development default. "
                "Set a strong SECRET_KEY in production."
            )

    def _validate_roles_settings(self):
        """Validate role directory configuration."""
        timeout = getattr(settings, 'ROLES_DIRECTORY_TIMEOUT', None)
        if timeout is not None and timeout <= 0:
            raise ImproperlyConfigured(
                f"ROLES_DIRECTORY_TIMEOUT must be positive, got {timeout}"
            )

        ttl = getattr(settings, 'ROLES_STATE_CACHE_TTL', None)
        if ttl is not None and ttl < 0:
            raise ImproperlyConfigured(
                f"ROLES_STATE_CACHE_TTL must not be negative, got {ttl}"
            )

        if not getattr(settings, 'ROLES_DIRECTORY_URL', None):
            logger.warning(
                "ROLES_DIRECTORY_URL is not set. Role assignments will not be "
                "fetched and every role check will fail closed."
            )

    def _validate_role_catalog(self):
        """Build the role catalog, failing on an inconsistent table."""
        from apps.core.exceptions import RoleCatalogError
        from apps.roles.catalog import get_catalog

        try:
            catalog = get_catalog()
        except (RoleCatalogError, ImportError) as e:
            raise ImproperlyConfigured(f"Role catalog is invalid: {e}") from e

        logger.info(f"Role catalog validated (version {catalog.version})")
