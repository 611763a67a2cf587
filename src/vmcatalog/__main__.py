from .catalog import CatalogClient, SubscriptionClient
from .catalog.image_reference import AVAILABLE_FORMATS, generate_all_formats, generate_format
from .errors import CatalogError
from .fetching import BaseFetcher, EnvironmentTokenProvider
from .setup import setup_logging, load_config, LOGLEVEL_MAPPING
import argparse
import asyncio
import json
import logging
import os
import sys


CONFIGFILE = "config/vmcatalog_config.yaml"
LOGFILE_ENABLED_DEFAULT = False
LOGFILE = "logs/vmcatalog.log"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='vmcatalog',
        description='Browse the Azure VM image catalog'
    )
    parser.add_argument('--config', default=None,
                        help=f'Path to the config file (default: {CONFIGFILE})')
    parser.add_argument('--location', default=None,
                        help='Azure location (default: from config, else eastus)')
    parser.add_argument('--format', choices=['text', 'json'], default='text',
                        dest='output_format', help='Output format')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    commands = parser.add_subparsers(dest='command', required=True)
    commands.add_parser('subscriptions', help='List subscriptions')

    locations = commands.add_parser('locations', help='List locations of a subscription')
    locations.add_argument('subscription')

    publishers = commands.add_parser('publishers', help='List image publishers')
    publishers.add_argument('subscription')

    offers = commands.add_parser('offers', help='List offers of a publisher')
    offers.add_argument('subscription')
    offers.add_argument('publisher')

    skus = commands.add_parser('skus', help='List SKUs of an offer with their versions')
    skus.add_argument('subscription')
    skus.add_argument('publisher')
    skus.add_argument('offer')

    image = commands.add_parser('image', help='Print the image reference of a SKU')
    image.add_argument('subscription')
    image.add_argument('publisher')
    image.add_argument('offer')
    image.add_argument('sku')
    image.add_argument('version', nargs='?', default=None,
                       help='Image version (default: newest)')
    image.add_argument('--iac', choices=[key for key, _label in AVAILABLE_FORMATS],
                       default=None, help='Print one infrastructure-as-code format')
    return parser


def _load_config(path) -> dict:
    if path is None:
        if not os.path.isfile(CONFIGFILE):
            return {'catalog': {}}
        path = CONFIGFILE
    return load_config(path)


async def run_command(args, config: dict, token_provider):
    """Execute one CLI command and return printable data."""
    catalog_config = config.get('catalog') or {}
    # Both clients share one cache and one rate limit window
    infrastructure = BaseFetcher.infrastructure_from_config(catalog_config)
    subscriptions = SubscriptionClient.from_config(catalog_config, token_provider,
                                                   **infrastructure)
    catalog = CatalogClient.from_config(catalog_config, token_provider, **infrastructure)

    try:
        if args.command == 'subscriptions':
            return [item.to_dict() for item in await subscriptions.list_subscriptions()]
        if args.command == 'locations':
            return [item.to_dict() for item in
                    await subscriptions.list_locations(args.subscription)]
        if args.command == 'publishers':
            return [item.to_dict() for item in
                    await catalog.list_publishers(args.subscription, args.location)]
        if args.command == 'offers':
            return [item.to_dict() for item in
                    await catalog.list_offers(args.subscription, args.publisher, args.location)]
        if args.command == 'skus':
            return [item.to_dict() for item in
                    await catalog.list_skus(args.subscription, args.publisher,
                                            args.offer, args.location)]
        if args.command == 'image':
            image_ref = await catalog.get_image_reference(
                args.subscription, args.publisher, args.offer, args.sku,
                version=args.version, location=args.location
            )
            if args.iac:
                return generate_format(image_ref, args.iac)
            return {'imageReference': image_ref.to_dict(),
                    'formats': generate_all_formats(image_ref)}
        raise ValueError(f'Unknown command {args.command}')
    finally:
        catalog.close()
        subscriptions.close()


def render(data, output_format: str) -> str:
    if isinstance(data, str):
        return data
    if output_format == 'json':
        return json.dumps(data, indent=2)

    lines = []
    if isinstance(data, dict):
        lines.append(json.dumps(data['imageReference'], indent=2))
        for key, snippet in data['formats'].items():
            lines.append(f'\n# {key}\n{snippet}')
        return '\n'.join(lines)

    for item in data:
        name = item.get('name') or item.get('subscription_id')
        if 'versions' in item:
            versions = ', '.join(item['versions']) or '(no versions)'
            lines.append(f'{name}: {versions}')
        elif item.get('display_name') and item['display_name'] != name:
            lines.append(f"{name}\t{item['display_name']}")
        else:
            lines.append(name)
    return '\n'.join(lines)


def main(argv=None) -> int:
    # Configure a basic logger to be able to log even before the configuration is loaded
    setup_logging(level=logging.WARNING)
    logger = logging.getLogger(__name__)

    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = _load_config(args.config)
    except RuntimeError as e:
        logger.error('%s', e)
        return 2

    loglevel = 'debug' if args.verbose else config.get('loglevel', 'warning')
    logfile_enabled = config.get('logfile_enabled', LOGFILE_ENABLED_DEFAULT)
    logfile = config.get('logfile_path', LOGFILE) if logfile_enabled else None
    setup_logging(level=LOGLEVEL_MAPPING.get(loglevel, logging.INFO), logfile=logfile,
                  max_logfile_size_kb=config.get('max_logfile_size', 1024))

    if not args.verbose:
        logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)
        logging.getLogger("asyncio").setLevel(logging.WARNING)

    try:
        data = asyncio.run(run_command(args, config, EnvironmentTokenProvider()))
    except CatalogError as e:
        logger.debug('Command failed', exc_info=True)
        print(f'Error: {e.user_message} ({e})', file=sys.stderr)
        return 1

    print(render(data, args.output_format))
    return 0


if __name__ == "__main__":
    sys.exit(main())
