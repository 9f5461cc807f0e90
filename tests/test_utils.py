"""
工具函数测试

覆盖范围：
- 英文复数（默认表名）
- 比较运算符校验
"""

import pytest

from pyrecord.common.exceptions import QueryError
from pyrecord.common.utils import check_operator, is_english_consonant, make_plural


class TestMakePlural:
    """复数规则测试"""

    @pytest.mark.parametrize('word, plural', [
        ('user', 'users'),
        ('game', 'games'),
        ('bus', 'buses'),
        ('box', 'boxes'),
        ('quiz', 'quizes'),
        ('match', 'matches'),
        ('dish', 'dishes'),
        ('category', 'categories'),
        ('day', 'days'),
        ('wolf', 'wolves'),
        ('roof', 'roofs'),
        ('chief', 'chiefs'),
        ('month', 'months'),
        ('a', 'a'),
        ('', ''),
    ])
    def test_rules(self, word: str, plural: str) -> None:
        assert make_plural(word) == plural

    def test_consonants(self) -> None:
        assert is_english_consonant('b')
        assert not is_english_consonant('E')


class TestCheckOperator:
    """运算符校验测试"""

    @pytest.mark.parametrize('operator, normalized', [
        ('=', '='),
        ('<>', '<>'),
        ('LIKE', 'like'),
        (' not   like ', 'not like'),
        ('Is Not', 'is not'),
    ])
    def test_valid(self, operator: str, normalized: str) -> None:
        assert check_operator(operator) == normalized

    @pytest.mark.parametrize('operator', ['==', 'or 1=1 --', '', 'between'])
    def test_invalid(self, operator: str) -> None:
        with pytest.raises(QueryError):
            check_operator(operator)
