import random

from game.logic.verification import CODE_ALPHABET, code_matches, generate_code


class TestGenerateCode:
    def test_default_length_and_alphabet(self):
        code = generate_code(random.Random(0))
        assert len(code) == 6
        assert all(c in CODE_ALPHABET for c in code)

    def test_custom_length(self):
        assert len(generate_code(random.Random(0), 10)) == 10

    def test_codes_vary(self):
        rng = random.Random(1)
        assert len({generate_code(rng) for _ in range(20)}) > 1


class TestCodeMatches:
    def test_case_insensitive(self):
        assert code_matches("AB12CD", "ab12cd")

    def test_surrounding_whitespace_ignored(self):
        assert code_matches("AB12CD", "  AB12CD\n")

    def test_mismatch(self):
        assert not code_matches("AB12CD", "AB12CE")

    def test_empty_attempt(self):
        assert not code_matches("AB12CD", "")
