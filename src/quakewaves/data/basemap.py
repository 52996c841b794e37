"""Built-in coarse world land mask.

Hand-simplified continent outlines in (lon, lat), rasterised black-on-white
through the screen projection. Used when no background raster is configured;
any real black/white map image can replace it.
"""

from pathlib import Path

from PIL import Image, ImageDraw

from quakewaves.core.constants import LAND_SENTINEL_RGB
from quakewaves.models.projection import ScreenProjection

WATER_RGB = (255, 255, 255)

# Longitudes use the map's [-170, 190] domain, so far-east Siberia runs past 180
LAND_OUTLINES: dict[str, list[tuple[float, float]]] = {
    "north_america": [
        (-168, 66), (-162, 70), (-141, 70), (-128, 70), (-95, 72), (-80, 73),
        (-62, 67), (-64, 60), (-56, 52), (-66, 45), (-70, 42), (-76, 35),
        (-81, 31), (-80, 25), (-82, 29), (-90, 30), (-97, 26), (-97, 21),
        (-87, 21), (-88, 15), (-83, 9), (-78, 8), (-85, 11), (-92, 14),
        (-105, 20), (-110, 24), (-115, 30), (-118, 34), (-124, 40), (-124, 47),
        (-130, 55), (-140, 60), (-150, 61), (-158, 57), (-165, 55), (-160, 59),
        (-166, 62),
    ],
    "south_america": [
        (-78, 8), (-72, 12), (-62, 10), (-52, 5), (-50, 0), (-35, -5),
        (-39, -14), (-41, -22), (-48, -26), (-53, -34), (-58, -38), (-65, -42),
        (-68, -50), (-69, -55), (-74, -53), (-74, -45), (-73, -37), (-71, -30),
        (-70, -18), (-76, -14), (-81, -5), (-80, 0), (-77, 4),
    ],
    "greenland": [
        (-73, 78), (-60, 82), (-30, 83), (-20, 80), (-20, 70), (-40, 65),
        (-43, 60), (-50, 62), (-55, 68), (-60, 76),
    ],
    "eurasia": [
        (-10, 36), (-9, 43), (-2, 44), (-5, 48), (2, 51), (8, 54), (10, 58),
        (5, 62), (15, 69), (28, 71), (40, 67), (60, 70), (80, 73), (100, 77),
        (115, 74), (140, 72), (160, 70), (180, 69), (190, 66), (178, 62),
        (163, 60), (156, 51), (142, 54), (140, 48), (135, 43), (129, 35),
        (126, 38), (122, 40), (121, 31), (117, 24), (108, 21), (106, 10),
        (103, 1), (100, 13), (98, 16), (92, 21), (87, 22), (80, 15), (77, 8),
        (72, 21), (67, 25), (57, 25), (52, 27), (48, 30), (56, 24), (59, 22),
        (52, 16), (43, 13), (39, 21), (35, 28), (34, 31), (36, 36), (30, 36),
        (26, 40), (20, 40), (15, 38), (12, 44), (8, 44), (3, 43), (-1, 37),
        (-6, 36),
    ],
    "africa": [
        (-17, 21), (-17, 15), (-12, 7), (-8, 4), (5, 5), (9, 4), (10, -2),
        (12, -5), (13, -12), (12, -17), (15, -27), (18, -34), (26, -34),
        (33, -27), (35, -20), (40, -15), (40, -5), (44, 2), (51, 11), (43, 12),
        (38, 18), (32, 31), (20, 32), (11, 37), (-1, 35), (-6, 36), (-10, 30),
        (-16, 24),
    ],
    "madagascar": [(44, -25), (47, -25), (50, -15), (49, -12), (44, -16)],
    "australia": [
        (114, -22), (114, -34), (118, -35), (124, -33), (131, -31), (138, -35),
        (141, -38), (147, -39), (150, -37), (153, -30), (153, -25), (146, -19),
        (142, -11), (136, -12), (130, -12), (125, -15), (122, -18),
    ],
    "japan": [
        (130, 31), (135, 34), (141, 36), (142, 40), (141, 45), (145, 44),
        (141, 41), (140, 38), (137, 37), (133, 35),
    ],
    "borneo": [(109, 1), (117, 7), (119, 5), (116, -4), (110, -3)],
    "sumatra": [(95, 5), (98, 4), (106, -6), (102, -5)],
    "new_zealand": [(172, -34), (178, -38), (175, -41), (171, -46), (167, -46), (172, -41)],
    "britain": [(-5, 50), (1, 51), (-1, 55), (-3, 58), (-6, 57), (-3, 54)],
}


def render_world_mask(width: int, height: int) -> Image.Image:
    """Rasterise the built-in outlines into a black (land) on white (water) image."""
    projection = ScreenProjection(width, height)
    image = Image.new("RGB", (width, height), WATER_RGB)
    draw = ImageDraw.Draw(image)

    for outline in LAND_OUTLINES.values():
        points = [projection.to_screen(lon, lat) for lon, lat in outline]
        draw.polygon(points, fill=LAND_SENTINEL_RGB)

    return image


def load_background(map_path: Path | None, width: int, height: int) -> Image.Image:
    """Background raster at display size: the configured map, or the built-in one.

    Resampling is nearest-neighbour so the two-colour classification survives.
    """
    if map_path is None:
        return render_world_mask(width, height)

    image = Image.open(map_path).convert("RGB")
    if image.size != (width, height):
        image = image.resize((width, height), Image.Resampling.NEAREST)
    return image
