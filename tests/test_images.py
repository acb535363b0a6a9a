import unittest

from utils.images import image_size_for, optimized_image_url

PEXELS = "https://images.pexels.com/photos/1/shirt.jpeg?auto=compress&w=1260"
PIXABAY = "https://cdn.pixabay.com/photo/2020/watch_1280.jpg"
AVATAR = "https://ui-avatars.com/api/?name=Asha&background=random&size=64"


class ImageUrlTestCase(unittest.TestCase):
    def test_pexels_query_is_replaced(self):
        self.assertEqual(
            optimized_image_url(PEXELS, width=400, height=300),
            "https://images.pexels.com/photos/1/shirt.jpeg"
            "?w=400&h=300&auto=compress&cs=tinysrgb&dpr=2",
        )

    def test_pixabay_small_rendition(self):
        self.assertTrue(optimized_image_url(PIXABAY, width=640).endswith("_640.jpg"))
        self.assertEqual(optimized_image_url(PIXABAY, width=1024), PIXABAY)

    def test_ui_avatars_size(self):
        url = optimized_image_url(AVATAR, width=128)
        self.assertIn("size=128x128", url)
        self.assertIn("name=Asha", url)
        self.assertNotIn("size=64", url)

    def test_other_hosts_and_empty(self):
        other = "https://example.com/a.png"
        self.assertEqual(optimized_image_url(other, width=100), other)
        self.assertEqual(optimized_image_url("", width=100), "")

    def test_image_size_for_display_density(self):
        self.assertEqual(image_size_for(320), 640)
        self.assertEqual(image_size_for(1200), 1920)
