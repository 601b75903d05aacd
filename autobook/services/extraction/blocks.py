
from ...models.bill import TransactionBlock
from .lines import is_anchor
from .rules import ExtractionRules


def segment_blocks(lines: list[str], rules: ExtractionRules) -> list[TransactionBlock]:
    """
    Split normalised lines into transaction blocks, one per date/time anchor.

    Lines before the first anchor belong to no transaction and are dropped.
    An anchor directly followed by another anchor (or by the end of the text)
    has no content and yields no block.
    """
    blocks: list[TransactionBlock] = []
    current: list[str] = []

    for line in lines:
        if is_anchor(line, rules):
            _close(current, blocks)
            current = [line]
        elif current:
            current.append(line)

    _close(current, blocks)
    return blocks


def _close(current: list[str], blocks: list[TransactionBlock]) -> None:
    if len(current) >= 2:
        blocks.append(TransactionBlock(lines=tuple(current)))
