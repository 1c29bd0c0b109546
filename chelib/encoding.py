"""Text encoding: the Shift-JIS subset used by CHE name fields.

Double-byte codes are mapped through their JIS X 0208 row/cell coordinate.
Full-width digits and letters (row 3), hiragana (row 4) and katakana (row 5)
are resolved algebraically; full-width punctuation and a short list of kanji
that show up in team and tournament names go through an explicit table.
Anything else decodes to '?' and encodes to the single byte 0x3F, never to
0x00, so a substituted character cannot cut a fixed-width field short.
"""

SUBSTITUTE = "?"
SUBSTITUTE_BYTE = 0x3F

HALFWIDTH_KANA_FIRST = 0xA1
HALFWIDTH_KANA_LAST = 0xDF
HALFWIDTH_KANA_BASE = 0xFF61

_CURATED_CHARS = (
    # Row 1-2 punctuation and symbols
    "　、。，．・：；？！゛゜´｀¨＾￣＿ヽヾゝゞ〃仝々〆〇ー―‐／＼～∥｜…‥"
    "‘’“”（）〔〕［］｛｝〈〉《》「」『』【】＋－±×÷＝≠＜＞≦≧∞∴♂♀°′″℃"
    "￥＄￠￡％＃＆＊＠§☆★○●◎◇◆□■△▲▽▼※〒→←↑↓〓"
    # Kanji common in team, owner and tournament names
    "大会新規優勝戦第回杯王者最強選手権決定予本部東西南北日一二三四五六七八九十"
    "百千万年月時分赤青黄緑白黒金銀銅天地人山川海空風火水木土光闇龍竜虎鬼神魔帝"
    "国軍団隊組長名前中上下左右後内外高低旧古今正反春夏秋冬朝昼夜力技心体弱負引"
    "試合対総当結果順位点数表主催公式練習親善"
)


def sjis_to_rowcell(hi, lo):
    """Map a Shift-JIS byte pair to its (row, cell), or None if invalid."""
    if 0x81 <= hi <= 0x9F:
        row = (hi - 0x81) * 2 + 1
    elif 0xE0 <= hi <= 0xEF:
        row = (hi - 0xE0) * 2 + 63
    else:
        return None

    if 0x40 <= lo <= 0x7E:
        cell = lo - 0x3F
    elif 0x80 <= lo <= 0x9E:
        cell = lo - 0x40
    elif 0x9F <= lo <= 0xFC:
        cell = lo - 0x9E
        row += 1
    else:
        return None
    return row, cell


def rowcell_to_sjis(row, cell):
    """Map a JIS X 0208 (row, cell) to its Shift-JIS (hi, lo) byte pair."""
    if row <= 62:
        hi = (row + 1) // 2 + 0x80
    else:
        hi = (row - 63) // 2 + 0xE0

    if row % 2 == 1:
        lo = cell + 0x3F if cell <= 63 else cell + 0x40
    else:
        lo = cell + 0x9E
    return hi, lo


def _build_curated():
    """Resolve the curated characters to their row/cell coordinates."""
    table = {}
    for ch in dict.fromkeys(_CURATED_CHARS):
        try:
            code = ch.encode("cp932")
        except UnicodeEncodeError:
            continue
        if len(code) != 2:
            continue
        rowcell = sjis_to_rowcell(code[0], code[1])
        if rowcell is not None:
            table[ch] = rowcell
    return table


CURATED_TO_ROWCELL = _build_curated()
ROWCELL_TO_CURATED = {rc: ch for ch, rc in CURATED_TO_ROWCELL.items()}


def rowcell_to_char(row, cell):
    """Return the character at (row, cell), or None outside the covered subset."""
    if row == 3 and (16 <= cell <= 25 or 33 <= cell <= 58 or 65 <= cell <= 90):
        return chr(0xFF00 + cell)
    if row == 4 and 1 <= cell <= 83:
        return chr(0x3040 + cell)
    if row == 5 and 1 <= cell <= 86:
        return chr(0x30A0 + cell)
    return ROWCELL_TO_CURATED.get((row, cell))


def char_to_rowcell(ch):
    """Inverse of rowcell_to_char. Returns None for unmapped characters."""
    cp = ord(ch)
    if 0xFF10 <= cp <= 0xFF19 or 0xFF21 <= cp <= 0xFF3A or 0xFF41 <= cp <= 0xFF5A:
        return 3, cp - 0xFF00
    if 0x3041 <= cp <= 0x3093:
        return 4, cp - 0x3040
    if 0x30A1 <= cp <= 0x30F6:
        return 5, cp - 0x30A0
    return CURATED_TO_ROWCELL.get(ch)


def decode_text(data):
    """Decode Shift-JIS bytes up to the first zero byte."""
    result = []
    i = 0
    n = len(data)
    while i < n:
        b = data[i]
        if b == 0:
            break
        if b <= 0x7F:
            result.append(chr(b))
            i += 1
            continue
        if HALFWIDTH_KANA_FIRST <= b <= HALFWIDTH_KANA_LAST:
            result.append(chr(HALFWIDTH_KANA_BASE + b - HALFWIDTH_KANA_FIRST))
            i += 1
            continue
        if i + 1 >= n:
            break  # lead byte with no trail byte
        lo = data[i + 1]
        if lo == 0:
            result.append(SUBSTITUTE)
            break
        rowcell = sjis_to_rowcell(b, lo)
        ch = rowcell_to_char(*rowcell) if rowcell else None
        result.append(ch or SUBSTITUTE)
        i += 2
    return ''.join(result)


def encode_char(ch):
    """Encode a single character to one or two bytes."""
    cp = ord(ch)
    if cp <= 0x7F:
        return bytes([cp])
    if HALFWIDTH_KANA_BASE <= cp <= HALFWIDTH_KANA_BASE + (HALFWIDTH_KANA_LAST - HALFWIDTH_KANA_FIRST):
        return bytes([HALFWIDTH_KANA_FIRST + cp - HALFWIDTH_KANA_BASE])
    rowcell = char_to_rowcell(ch)
    if rowcell is None:
        return bytes([SUBSTITUTE_BYTE])
    return bytes(rowcell_to_sjis(*rowcell))


def encode_text(text):
    """Encode a string to Shift-JIS bytes (no terminator)."""
    return b''.join(encode_char(ch) for ch in text)


def encode_fixed(text, width):
    """Encode text into exactly `width` bytes, zero-padded.

    Truncation happens on character boundaries so a double-byte character is
    never split across the end of the field.
    """
    out = bytearray()
    for ch in text:
        piece = encode_char(ch)
        if len(out) + len(piece) > width:
            break
        out += piece
    out += bytes(width - len(out))
    return bytes(out)


def encoded_length(text):
    """Number of bytes `text` occupies once encoded."""
    return len(encode_text(text))
