import asyncio
import logging

from safer_scraper.config import ConfigError, ScraperConfig
from safer_scraper.inputs import NoInputError, load_identifiers, resolve_input_file
from safer_scraper.orchestrator import run_batch
from safer_scraper.sink import write_outputs

logger = logging.getLogger('safer_scraper')

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def configure_logging(level='INFO'):
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


async def main_async(config, base_dir='.', transport=None):
    input_path = resolve_input_file(config.input_file, base_dir=base_dir)
    identifiers = load_identifiers(input_path)
    logger.info("[BATCH] Running batch index %s (profile=%s, mode=%s) with %d MCs.",
                config.batch_index, config.profile, config.mode, len(identifiers))
    if not identifiers:
        logger.info("[BATCH] No MCs in this batch. Exiting.")
        return None
    result = await run_batch(identifiers, config, transport=transport)
    return write_outputs(result, config)


def main(environ=None):
    try:
        config = ScraperConfig.from_env(environ)
    except ConfigError as e:
        configure_logging()
        logger.error("[CONFIG] %s", e)
        return 2
    configure_logging(config.log_level)
    try:
        asyncio.run(main_async(config))
    except NoInputError as e:
        logger.error("[INPUT] %s", e)
        return 1
    return 0
