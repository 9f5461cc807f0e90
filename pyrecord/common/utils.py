"""
Pyrecord 通用工具函数
"""

from typing import FrozenSet

from .exceptions import QueryError


# 允许出现在谓词中的比较运算符（小写）
OPERATORS: FrozenSet[str] = frozenset({
    '=', '<', '>', '<=', '>=', '<>', '!=', '<=>',
    'like', 'not like', 'regexp', 'not regexp',
    'is', 'is not',
})

_VOWELS = frozenset('aeiou')


def is_english_consonant(ch: str) -> bool:
    """判断字符是否为英文辅音字母"""
    return ch.lower() not in _VOWELS


def make_plural(word: str) -> str:
    """
    将英文单词转换为复数形式（用于默认表名）

    规则：
    - 以 s / x / z / ch / sh 结尾：加 es
    - 辅音 + y 结尾：y 变 ies
    - 辅音 + f 结尾：f 变 ves
    - 其它：加 s

    Args:
        word: 单数形式

    Returns:
        复数形式；单字符单词原样返回
    """
    if len(word) <= 1:
        return word

    last = word[-1]
    before_last = word[-2]

    if last in 'sxz':
        return word + 'es'
    if last == 'h' and before_last in 'cs':
        return word + 'es'
    if last == 'y' and is_english_consonant(before_last):
        return word[:-1] + 'ies'
    if last == 'f' and is_english_consonant(before_last):
        return word[:-1] + 'ves'
    return word + 's'


def check_operator(operator: str) -> str:
    """
    校验比较运算符

    Args:
        operator: 运算符

    Returns:
        规范化（去空白、小写）后的运算符

    Raises:
        QueryError: 不支持的运算符
    """
    normalized = ' '.join(str(operator).split()).lower()
    if normalized not in OPERATORS:
        raise QueryError(f"Unsupported operator: '{operator}'")
    return normalized
