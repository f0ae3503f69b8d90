"""
Management command to validate and display the role catalog.
"""
import json
from django.core.management.base import BaseCommand, CommandError

from apps.core.exceptions import RoleCatalogError
from apps.roles.catalog import get_catalog


class Command(BaseCommand):
    help = 'Validate the role catalog and print its roles, hierarchy and permissions'

    def add_arguments(self, parser):
        parser.add_argument(
            '--format',
            choices=['table', 'json'],
            default='table',
            help='Output format (default: table)'
        )

    def handle(self, *args, **options):
        try:
            catalog = get_catalog()
            catalog.validate()
        except RoleCatalogError as e:
            raise CommandError(f"Role catalog is invalid: {e.message} {e.details}")

        metadata = catalog.as_metadata()

        if options['format'] == 'json':
            self.stdout.write(json.dumps(metadata, indent=2))
            return

        self.stdout.write(self.style.SUCCESS(f"Role catalog version {metadata['version']}"))
        self.stdout.write('=' * 50)

        for definition in sorted(catalog.definitions(), key=lambda d: d.name):
            implied = sorted(
                catalog.name_for(role_id) for role_id in catalog.implied_roles(definition.role_id)
            )
            self.stdout.write(f"\n{definition.name} ({definition.role_id})")
            self.stdout.write(f"  Context: {definition.context.value}")
            self.stdout.write(f"  Implies: {', '.join(implied) or '-'}")
            self.stdout.write(f"  Permissions: {', '.join(sorted(definition.permissions)) or '-'}")

        self.stdout.write('\n' + '=' * 50)
        self.stdout.write(self.style.SUCCESS(f"{len(catalog.role_ids)} roles validated"))
