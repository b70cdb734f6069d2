import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_INPUTS = ('batch.txt', 'mc_list.txt')


class NoInputError(Exception):
    pass


#Picks the explicit input file, else batch.txt when present, else mc_list.txt.
def resolve_input_file(explicit='', base_dir='.'):
    base = Path(base_dir)
    if explicit:
        path = Path(explicit)
        if not path.is_absolute():
            path = base / path
        if not path.is_file():
            raise NoInputError(f"Input file not found: {path}")
        return path
    for name in DEFAULT_INPUTS:
        path = base / name
        if path.is_file():
            return path
    raise NoInputError(f"No input file found ({' or '.join(DEFAULT_INPUTS)}) in {base.resolve()}")


def parse_identifiers(text):
    return [line.strip() for line in text.splitlines() if line.strip()]


def load_identifiers(path):
    with open(path, 'r', encoding='utf-8') as f:
        identifiers = parse_identifiers(f.read())
    logger.info("[INPUT] Loaded %d MCs from %s", len(identifiers), path)
    return identifiers
