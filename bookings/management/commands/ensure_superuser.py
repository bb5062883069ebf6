import os
from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model

User = get_user_model()


class Command(BaseCommand):
    help = 'Create the venue owner account if no superuser exists (DJANGO_SUPERUSER_* env vars or options)'

    def add_arguments(self, parser):
        parser.add_argument('--username', default=os.environ.get('DJANGO_SUPERUSER_USERNAME', 'owner'))
        parser.add_argument('--email', default=os.environ.get('DJANGO_SUPERUSER_EMAIL', ''))

    def handle(self, *args, **options):
        if User.objects.filter(is_superuser=True).exists():
            self.stdout.write('Owner account already exists, skipping.')
            return

        password = os.environ.get('DJANGO_SUPERUSER_PASSWORD')
        if not password:
            self.stderr.write('DJANGO_SUPERUSER_PASSWORD not set, owner account not created.')
            return

        username = options['username']
        User.objects.create_superuser(username=username, email=options['email'], password=password)
        self.stdout.write(self.style.SUCCESS(f'Owner account "{username}" created.'))
