#!/usr/bin/python3

import click

from ignition.journal import FileJournal
from ignition.options import deployment_dir_option, reset_option


@click.command()
@deployment_dir_option
@reset_option
def cli(deployment_dir, reset_actions):
    """Show the journal of a deployment; optionally reset pending or failed actions."""
    journal = FileJournal.from_directory(deployment_dir)

    for module_name, action_id in reset_actions:
        journal.reset(module_name, action_id)
        print(f"(i) {module_name}#{action_id} will be retried on the next run.")

    entries = journal.entries()
    if not entries:
        print(f"No journal entries in {deployment_dir}.")
        return

    print(f"Journal {journal.path}")
    for (module_name, action_id), entry in entries.items():
        line = f"\t[{entry.status.value:^9}] {module_name}#{action_id}"
        if entry.error:
            line = f"{line} - {entry.error}"
        print(line)


if __name__ == "__main__":
    cli()
