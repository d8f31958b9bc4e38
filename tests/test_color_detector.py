import unittest
import sys
import os

import cv2
import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from apps.vision_lab.modules.region_detector.color import build_mask, clean_mask, mask_coverage, bgr_to_hsv
from apps.vision_lab.modules.region_detector.color_detector import (
    detect_color_regions, find_candidates, merge_close_regions, parse_color_ranges
)
from apps.vision_lab.modules.region_detector.errors import InputError
from apps.vision_lab.modules.region_detector.schemas import ColorRange, Region
from tests.utils import WHITE_RANGE, create_square_image


class TestMaskOperations(unittest.TestCase):

    def test_clean_empty_mask_stays_empty(self):
        mask = np.zeros((120, 80), dtype=np.uint8)
        cleaned = clean_mask(mask, 5)
        self.assertEqual(cleaned.shape, mask.shape)
        self.assertEqual(cv2.countNonZero(cleaned), 0)

    def test_clean_mask_removes_specks_and_fills_gaps(self):
        mask = np.zeros((100, 100), dtype=np.uint8)
        mask[10:50, 10:50] = 255
        mask[30, 30] = 0  # one pixel hole
        mask[80, 80] = 255  # isolated speck

        cleaned = clean_mask(mask, 5)
        self.assertEqual(cleaned[30, 30], 255)
        self.assertEqual(cleaned[80, 80], 0)

    def test_build_mask_is_inclusive(self):
        image = np.zeros((10, 10, 3), dtype=np.uint8)
        image[:, :5] = (255, 255, 255)
        mask = build_mask(bgr_to_hsv(image), ColorRange("White", (0, 0, 255), (180, 0, 255)))

        self.assertEqual(mask.shape, (10, 10))
        self.assertEqual(cv2.countNonZero(mask), 50)

    def test_mask_coverage(self):
        mask = np.zeros((100, 100), dtype=np.uint8)
        mask[0:10, 0:5] = 255
        self.assertAlmostEqual(mask_coverage(mask, Region(0, 0, 10, 10)), 0.5)
        self.assertAlmostEqual(mask_coverage(mask, Region(50, 50, 10, 10)), 0.0)


class TestCandidateReduction(unittest.TestCase):

    def test_find_candidates_drops_small_components(self):
        mask = np.zeros((200, 200), dtype=np.uint8)
        mask[20:60, 20:60] = 255  # 40x40
        mask[150:165, 150:165] = 255  # 15x15, contour area below 500

        candidates = find_candidates(mask, 500)
        self.assertEqual(len(candidates), 1)
        self.assertEqual((candidates[0].x, candidates[0].y, candidates[0].w, candidates[0].h), (20, 20, 40, 40))

    def test_merge_close_drops_later_region(self):
        a = Region(0, 0, 10, 10)
        b = Region(4, 4, 10, 10)
        far = Region(100, 100, 10, 10)

        merged = merge_close_regions([a, b, far], 20)
        self.assertEqual(merged, [a, far])

    def test_merge_close_union(self):
        a = Region(0, 0, 10, 10)
        b = Region(4, 4, 10, 10)

        merged = merge_close_regions([a, b], 20, use_union=True)
        self.assertEqual(len(merged), 1)
        self.assertEqual((merged[0].x, merged[0].y, merged[0].w, merged[0].h), (0, 0, 14, 14))

    def test_merge_never_increases_count(self):
        regions = [Region(x, (x * 7) % 50, 10, 10) for x in range(0, 200, 9)]
        for use_union in (False, True):
            merged = merge_close_regions(regions, 20, use_union=use_union)
            self.assertLessEqual(len(merged), len(regions))

    def test_parse_color_ranges(self):
        ranges = parse_color_ranges(None)
        self.assertEqual([r.name for r in ranges], ["Red", "Yellow", "Green", "Blue"])

        with self.assertRaises(InputError):
            parse_color_ranges({})
        with self.assertRaises(InputError):
            parse_color_ranges({"Bad": ((50, 0, 0), (10, 255, 255))})
        with self.assertRaises(InputError):
            parse_color_ranges({"Bad": ((0, 0, 0), (10, 255, 300))})

    def test_parse_color_ranges_needs_bound_pairs(self):
        for bounds in (((0, 0, 0),), ((0, 0, 0), (10, 255, 255), (20, 255, 255)), 5):
            with self.assertRaises(InputError) as ctx:
                parse_color_ranges({"Bad": bounds})
            self.assertIn("lower and an upper bound", str(ctx.exception))

    def test_merge_policy_is_keyword_only(self):
        with self.assertRaises(TypeError):
            merge_close_regions([Region(0, 0, 10, 10)], 20, True)


class TestDetectColorRegions(unittest.TestCase):

    def test_white_square(self):
        image = create_square_image(200, 200, (50, 50), 40)
        result = detect_color_regions(image, WHITE_RANGE, 50.0)

        self.assertEqual(result.label_counts, {"White": 1})
        self.assertEqual(result.detected_count, 1)
        region = result.regions[0]
        self.assertEqual((region.x, region.y, region.w, region.h), (50, 50, 40, 40))
        self.assertEqual(region.label, "White")
        self.assertAlmostEqual(region.coverage, 1.0, places=2)
        self.assertEqual(result.image_size, (200, 200))
        self.assertGreaterEqual(result.processing_time_ms, 0)

    def test_source_is_not_modified(self):
        image = create_square_image()
        before = image.copy()
        result = detect_color_regions(image, WHITE_RANGE, 50.0)

        self.assertTrue(np.array_equal(image, before))
        self.assertEqual(result.annotated_image.shape, image.shape)
        self.assertFalse(np.array_equal(result.annotated_image, image))

    def test_default_color_table(self):
        image = np.zeros((200, 300, 3), dtype=np.uint8)
        cv2.rectangle(image, (20, 20), (79, 79), (0, 0, 255), -1)  # red
        cv2.rectangle(image, (200, 100), (259, 159), (255, 0, 0), -1)  # blue

        result = detect_color_regions(image)
        self.assertEqual(result.label_counts, {"Red": 1, "Yellow": 0, "Green": 0, "Blue": 1})
        self.assertEqual(sorted(r.label for r in result.regions), ["Blue", "Red"])

    def test_coverage_threshold(self):
        # Hollow outline: bounding box is mostly empty
        image = np.zeros((200, 200, 3), dtype=np.uint8)
        cv2.rectangle(image, (50, 50), (149, 149), (255, 255, 255), 8)

        rejected = detect_color_regions(image, WHITE_RANGE, 50.0)
        self.assertEqual(rejected.label_counts["White"], 0)

        for min_coverage in (0.0, 10.0, 20.0):
            result = detect_color_regions(image, WHITE_RANGE, min_coverage)
            self.assertEqual(result.label_counts["White"], 1)
            for region in result.regions:
                self.assertGreaterEqual(region.coverage * 100.0, min_coverage)
                self.assertLess(region.coverage, 0.5)

    def test_grayscale_input(self):
        image = cv2.cvtColor(create_square_image(), cv2.COLOR_BGR2GRAY)
        result = detect_color_regions(image, WHITE_RANGE, 50.0)
        self.assertEqual(result.label_counts["White"], 1)
        self.assertEqual(result.annotated_image.ndim, 3)

    def test_options_are_keyword_only(self):
        with self.assertRaises(TypeError):
            detect_color_regions(create_square_image(), WHITE_RANGE, 50.0, 5)

    def test_invalid_input(self):
        with self.assertRaises(InputError):
            detect_color_regions(np.zeros((0, 0, 3), dtype=np.uint8), WHITE_RANGE, 50.0)
        with self.assertRaises(InputError):
            detect_color_regions("does_not_exist.png", WHITE_RANGE, 50.0)
        with self.assertRaises(InputError):
            detect_color_regions(create_square_image(), WHITE_RANGE, 150.0)


if __name__ == '__main__':
    unittest.main()
