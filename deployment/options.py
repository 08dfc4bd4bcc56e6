import click

from deployment.constants import SUPPORTED_TAGS
from deployment.types import ChecksumAddress

tag_option = click.option(
    "--tag",
    "-t",
    "tags",
    help="Tag of a deployment task to run; may be repeated.",
    type=click.Choice(SUPPORTED_TAGS),
    multiple=True,
    required=True,
)

owner_option = click.option(
    "--owner",
    "-o",
    help="Address that receives ownership; overrides the OWNER constant.",
    type=ChecksumAddress(),
    required=False,
)

minter_option = click.option(
    "--minter",
    "-m",
    help="Address granted the minter role; overrides the MINTER constant.",
    type=ChecksumAddress(),
    required=False,
)

autosign_option = click.option(
    "--autosign",
    help="Automatically sign transactions.",
    is_flag=True,
)

verify_option = click.option(
    "--verify/--no-verify",
    help="Publish contract sources to the block explorer.",
    default=False,
)
