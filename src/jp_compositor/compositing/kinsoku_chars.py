"""JIS X 4051 금칙 처리(禁則処理) 문자 테이블."""

# 행두 금칙 문자 (行頭禁則文字): 줄 맨 앞에 올 수 없는 문자
NOT_AT_LINE_START: frozenset[str] = frozenset(
    [
        # 닫는 괄호
        "）",
        "〕",
        "〉",
        "》",
        "」",
        "』",
        "】",
        "〗",
        "〟",
        ")",
        "]",
        "}",
        ">",
        # 구두점 (句読点)
        "。",
        "．",
        "、",
        "，",
        ".",
        ",",
        # 물음표·느낌표·콜론류
        "：",
        "；",
        "？",
        "！",
        ":",
        ";",
        "?",
        "!",
        # 장음 부호·작은 가나
        "ー",
        "ぁ",
        "ぃ",
        "ぅ",
        "ぇ",
        "ぉ",
        "っ",
        "ゃ",
        "ゅ",
        "ょ",
        "ゎ",
        "ァ",
        "ィ",
        "ゥ",
        "ェ",
        "ォ",
        "ッ",
        "ャ",
        "ュ",
        "ョ",
        "ヮ",
        "ヵ",
        "ヶ",
        # 반복 부호
        "々",
        "〻",
        "ヽ",
        "ヾ",
        "ゝ",
        "ゞ",
        # 퍼센트·도 기호
        "%",
        "％",
        "°",
        "℃",
    ]
)

# 행말 금칙 문자 (行末禁則文字): 줄 맨 끝에 올 수 없는 문자
NOT_AT_LINE_END: frozenset[str] = frozenset(
    [
        # 여는 괄호
        "（",
        "〔",
        "〈",
        "《",
        "「",
        "『",
        "【",
        "〖",
        "〝",
        "(",
        "[",
        "{",
        "<",
        # 통화 기호
        "¥",
        "￥",
        "$",
        "＄",
        "£",
        "￡",
    ]
)
