import logging

from django.core.management.base import BaseCommand, CommandError

from identity.invariants import find_graph_problems
from identity.store import ContactStore

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Scan every live contact and report clusters that are not a single "
        "primary with directly linked secondaries."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--fail",
            action="store_true",
            help="Exit with an error status when any problem is found.",
        )

    def handle(self, *args, **options):
        contacts = ContactStore().all_live_contacts()
        problems = find_graph_problems(contacts)

        for problem in problems:
            self.stdout.write(self.style.WARNING(problem))

        summary = f"Audited {len(contacts)} live contacts, found {len(problems)} problems"
        logger.info(summary)

        if problems and options["fail"]:
            raise CommandError(summary)
        self.stdout.write(self.style.SUCCESS(summary) if not problems else summary)
