import unittest

from quartermaster.analytics.name_matcher import jaccard_similarity, matches


class NameMatcherTests(unittest.TestCase):
    def test_token_subset_ignores_order_and_case(self):
        self.assertTrue(matches("v1 Shield Drake", "v1 drake shield"))
        self.assertTrue(matches("v11 Bomber DPS Manticore", "v11 DPS Bomber Manticore"))

    def test_token_subset_allows_suffixes(self):
        self.assertTrue(matches("v11 Whaling Kirin", "v11 whaling kirin PITH B"))

    def test_similarity_fallback_accepts_punctuation_variants(self):
        self.assertAlmostEqual(
            jaccard_similarity("v11 Heavy DPS 3 Gyro", "v11 Heavy DPS (3 Gyro)"),
            0.8181818181818182,
        )
        self.assertTrue(matches("v11 Heavy DPS 3 Gyro", "v11 Heavy DPS (3 Gyro)"))

    def test_similarity_fallback_rejects_distinct_hulls(self):
        self.assertAlmostEqual(
            jaccard_similarity("v11 Heavy Legion", "v11 Heavy Leshak"),
            0.5789473684210527,
        )
        self.assertFalse(matches("v11 Heavy Legion", "v11 Heavy Leshak"))
        self.assertAlmostEqual(
            jaccard_similarity("v11 Whaling Kirin", "v11 Whaling Kiki"),
            0.7222222222222222,
        )
        self.assertFalse(matches("v11 Whaling Kirin", "v11 Whaling Kiki"))

    def test_repeated_tokens_must_each_be_present(self):
        self.assertTrue(matches("Drake Drake", "Drake"))
        self.assertFalse(matches("Shield Drake", "Drake"))

    def test_blank_requirement_never_matches(self):
        self.assertFalse(matches("", "v1 Shield Drake"))
        self.assertFalse(matches("   ", "v1 Shield Drake"))

    def test_similarity_is_case_insensitive(self):
        self.assertEqual(jaccard_similarity("ABC", "abc"), 1.0)


if __name__ == "__main__":
    unittest.main()
