import argparse
import asyncio
import logging

from colorama import init, Fore, Style

from artindexer import (
    GraphQLClient,
    ArtBlocksProjectSource,
    ProjectIndexBuilder,
    build_family_builders,
    NameResolutionCache,
    EnsLookup,
    OpenSeaNameLookup,
    TokenMetadataClient,
    ListingHandler,
    ReservoirListPoller,
    BirthdayRoutine,
    RandomArtRoutine,
    DailyTrigger,
    ProjectQueryHandler,
)
from config import (
    SUBGRAPH_API_URL,
    HASURA_GRAPHQL_ENDPOINT,
    HASURA_GRAPHQL_ADMIN_SECRET,
    ARTBLOCKS_TOKEN_API_URL,
    ETH_RPC_URL,
    OPENSEA_API_KEY,
    LOG_LEVEL,
)
from indexer_config import get_indexer_config, is_indexer_enabled
from telegram_commands import TelegramCommandHandler
from telegram_notifier import TelegramNotifier

init(autoreset=True)

logger = logging.getLogger("artindexer.main")


def build_name_cache() -> NameResolutionCache:
    """ENS through our own RPC when configured, OpenSea usernames otherwise."""
    if ETH_RPC_URL:
        return NameResolutionCache(EnsLookup.from_rpc_url(ETH_RPC_URL), label="ENS")
    return NameResolutionCache(OpenSeaNameLookup(OPENSEA_API_KEY), label="OpenSea")


def build_source(index_config: dict) -> ArtBlocksProjectSource:
    timeout = index_config.get('request_timeout_seconds', 30)
    subgraph = GraphQLClient(SUBGRAPH_API_URL, timeout_seconds=timeout, name="subgraph")

    hasura = None
    if HASURA_GRAPHQL_ENDPOINT:
        headers = {}
        if HASURA_GRAPHQL_ADMIN_SECRET:
            headers['x-hasura-admin-secret'] = HASURA_GRAPHQL_ADMIN_SECRET
        hasura = GraphQLClient(HASURA_GRAPHQL_ENDPOINT, headers=headers, timeout_seconds=timeout, name="hasura")

    return ArtBlocksProjectSource(
        subgraph,
        hasura,
        page_size=index_config.get('page_size', 1000),
        core_contracts=index_config.get('core_contracts', []),
    )


def print_index_summary(family: str, builder: ProjectIndexBuilder):
    stats = builder.get_stats()
    print(f"\n{Fore.CYAN}{'='*50}")
    print(f"{Fore.YELLOW}Family: {Fore.WHITE}{family}")
    print(f"{Fore.YELLOW}Projects: {Fore.WHITE}{stats['published_projects']}")
    print(f"{Fore.YELLOW}Sources: {Fore.WHITE}{', '.join(stats['sources'])}")
    print(f"{Fore.YELLOW}Rebuilds: {Fore.GREEN}{stats['rebuilds_completed']} ok"
          f"{Style.RESET_ALL} / {Fore.RED}{stats['rebuilds_failed']} failed")
    print(f"{Fore.CYAN}{'='*50}\n")


async def main():
    parser = argparse.ArgumentParser(description="Art Blocks Project Indexer & Listing Bot")
    parser.add_argument("--no-poller", action="store_true", help="Disable the Reservoir listing poller")
    parser.add_argument("--no-routines", action="store_true", help="Disable birthday / random art routines")
    parser.add_argument("--no-commands", action="store_true", help="Disable Telegram project queries")
    parser.add_argument("--once", action="store_true", help="Build the project index once, print it and exit")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not is_indexer_enabled():
        print(f"{Fore.YELLOW}Art indexer disabled in indexer_config.py")
        return

    config = get_indexer_config()
    index_config = config['index']
    listing_config = config['listings']
    routine_config = config['routines']

    print(f"{Fore.GREEN}🎨 Art Blocks Project Indexer")
    print(f"{Fore.CYAN}📡 Contracts: {', '.join(index_config['core_contracts']) or 'none'}\n")

    source = build_source(index_config)
    builders = await build_family_builders(source, index_config)
    builder = builders['core']

    if args.once:
        try:
            for family, family_builder in builders.items():
                await family_builder.rebuild()
                print_index_summary(family, family_builder)
        finally:
            await source.close()
        return

    notifier = TelegramNotifier()
    if not notifier.enabled:
        print(f"{Fore.YELLOW}⚠️  Telegram not configured, alerts will only be logged")

    print(f"{Fore.GREEN}📚 INDEXED FAMILIES: {', '.join(builders)}")
    tasks = [asyncio.create_task(b.run(), name=f"index-{family}") for family, b in builders.items()]
    token_api = None

    if listing_config.get('enabled') and not args.no_poller:
        names = build_name_cache()
        token_api = TokenMetadataClient(ARTBLOCKS_TOKEN_API_URL)
        handler = ListingHandler(
            notifier,
            names,
            token_api,
            banned_addresses=listing_config.get('banned_addresses', []),
        )
        poller = ReservoirListPoller(
            listing_config['api_endpoint'],
            listing_config['refresh_rate_ms'],
            handler,
            api_key=listing_config.get('api_key', ''),
            config=listing_config,
        )
        print(f"{Fore.GREEN}🏷  LISTING POLLER: ENABLED (every {listing_config['refresh_rate_ms'] / 1000:.0f}s)")
        tasks.append(asyncio.create_task(poller.run(), name="reservoir-poller"))

    if not args.no_routines:
        random_art = routine_config['random_art']
        birthday = routine_config['birthday']
        if random_art.get('enabled'):
            routine = RandomArtRoutine(builder, notifier, DailyTrigger.parse(random_art['time']),
                                       amount=random_art.get('amount', 10))
            print(f"{Fore.GREEN}🎲 RANDOM ART: {random_art['amount']} tokens at {random_art['time']} UTC")
            tasks.append(asyncio.create_task(routine.run(), name="random-art"))
        if birthday.get('enabled'):
            routine = BirthdayRoutine(builder, notifier, DailyTrigger.parse(birthday['time']))
            print(f"{Fore.GREEN}🎂 BIRTHDAYS: checked at {birthday['time']} UTC")
            tasks.append(asyncio.create_task(routine.run(), name="birthdays"))

    if not args.no_commands:
        fallbacks = [b for family, b in builders.items() if family != 'core']
        query_handler = ProjectQueryHandler(builder, fallbacks=fallbacks)
        commands = TelegramCommandHandler(query_handler, notifier, builders=builders, source=source)
        tasks.append(asyncio.create_task(commands.start_polling(), name="telegram-commands"))

    try:
        await asyncio.gather(*tasks)
    except (KeyboardInterrupt, asyncio.CancelledError):
        print(f"\n{Fore.YELLOW}Indexer stopped.")
    finally:
        await source.close()
        if token_api:
            await token_api.close()

if __name__ == "__main__":
    asyncio.run(main())
