"""Colour-based obstacle detection projected onto the ground plane."""

from __future__ import annotations

import numpy as np

from roverkit.mapping import OccupancyGrid

UNKNOWN_PIXEL = 127
OBSTACLE_PIXEL = 255
FREE_PIXEL = 0


def bgr_to_hsv(image) -> np.ndarray:
    """Convert an 8-bit BGR image to 8-bit HSV with hue in 0..179."""
    img = np.asarray(image, dtype=float)
    if img.ndim < 1 or img.shape[-1] != 3:
        raise ValueError("image must have three colour channels")
    b, g, r = img[..., 0], img[..., 1], img[..., 2]
    v = np.max(img, axis=-1)
    diff = v - np.min(img, axis=-1)
    with np.errstate(divide="ignore", invalid="ignore"):
        s = np.where(v > 0, diff * 255.0 / np.where(v > 0, v, 1.0), 0.0)
        safe = np.where(diff > 0, diff, 1.0)
        h = np.where(
            v == r,
            60.0 * (g - b) / safe,
            np.where(v == g, 120.0 + 60.0 * (b - r) / safe, 240.0 + 60.0 * (r - g) / safe),
        )
    h = np.where(diff > 0, h, 0.0)
    h = np.where(h < 0, h + 360.0, h)
    hue = np.rint(h / 2.0) % 180
    return np.stack([hue, np.rint(s), v], axis=-1).astype(np.uint8)


def find_colors(image, range_min, range_max) -> np.ndarray:
    """Mask that is 255 where the pixel's HSV lies inside the inclusive range, else 0."""
    hsv = bgr_to_hsv(image).astype(int)
    low = np.asarray(range_min, dtype=float)[:3]
    high = np.asarray(range_max, dtype=float)[:3]
    inside = np.all((hsv >= low) & (hsv <= high), axis=-1)
    return np.where(inside, OBSTACLE_PIXEL, FREE_PIXEL).astype(np.uint8)


def reproject_to_ground_plane(image, homography, map_size) -> np.ndarray:
    """Warp a single-channel image through ``homography`` into a ``(width, height)`` map.

    Each map pixel takes the source pixel its inverse projection lands on;
    pixels that land outside the source are set to 127.
    """
    source = np.asarray(image)
    if source.ndim != 2:
        raise ValueError("image must be single-channel")
    width, height = (int(v) for v in map_size)
    inverse = np.linalg.inv(np.asarray(homography, dtype=float))
    ys, xs = np.mgrid[0:height, 0:width]
    dest = np.stack([xs.ravel(), ys.ravel(), np.ones(xs.size)]).astype(float)
    src = inverse @ dest
    with np.errstate(divide="ignore", invalid="ignore"):
        sx = np.trunc(src[0] / src[2])
        sy = np.trunc(src[1] / src[2])
    rows, cols = source.shape
    inside = (
        np.isfinite(sx)
        & np.isfinite(sy)
        & (sx >= 0)
        & (sx < cols)
        & (sy >= 0)
        & (sy < rows)
    )
    out = np.full(width * height, UNKNOWN_PIXEL, dtype=np.uint8)
    out[inside] = source[sy[inside].astype(int), sx[inside].astype(int)]
    return out.reshape(height, width)


def map_camera_properties(map_resolution: float, map_size):
    """Intrinsics, rotation and position of a virtual camera looking down on the map.

    ``map_resolution`` is in pixels per metre and ``map_size`` is ``(width, height)``
    in pixels. Returns ``(intrinsics, rotation, position)``.
    """
    width, height = map_size
    rotation = np.array([[0.0, -1.0, 0.0], [-1.0, 0.0, 0.0], [0.0, 0.0, -1.0]])
    z = 1.0
    f = map_resolution * z
    y = height / (2 * map_resolution)
    position = np.array([[0.0], [y], [z]])
    intrinsics = np.array(
        [[f, 0.0, width / 2.0], [0.0, f, height / 2.0], [0.0, 0.0, 1.0]]
    )
    return intrinsics, rotation, position


def compute_homography(
    camera_intrinsics,
    base_to_camera,
    map_camera_intrinsics,
    map_camera_rotation,
    map_camera_position,
) -> np.ndarray:
    """Homography from the robot camera's image to the virtual map camera's image.

    ``base_to_camera`` is the 4x4 transform of the base frame expressed in the
    camera frame. The ground is the base frame's z = 0 plane.
    """
    transform = np.asarray(base_to_camera, dtype=float)
    rb = transform[:3, :3]
    tb = transform[:3, 3:4]
    map_rotation = np.asarray(map_camera_rotation, dtype=float)
    map_position = np.asarray(map_camera_position, dtype=float).reshape(3, 1)
    n = rb @ np.array([[0.0], [0.0], [1.0]])
    d = abs(float(n.ravel() @ tb.ravel())) / np.linalg.norm(n)
    m = (map_rotation @ rb.T) - ((-map_rotation @ rb.T @ tb + map_position) @ n.T) / d
    return (
        np.asarray(map_camera_intrinsics, dtype=float)
        @ m
        @ np.linalg.inv(np.asarray(camera_intrinsics, dtype=float))
    )


def occupancy_value(image_value: int) -> int:
    """Occupancy grid value for a thresholded pixel: 0 free, 100 obstacle, -1 unknown."""
    if image_value == FREE_PIXEL:
        return 0
    if image_value == OBSTACLE_PIXEL:
        return 100
    return -1


def detect_obstacles(
    image,
    range_min,
    range_max,
    camera_intrinsics,
    base_to_camera,
    map_resolution: float = 100.0,
    map_width: int = 50,
    map_height: int = 100,
) -> OccupancyGrid:
    """Occupancy grid in the base frame of the obstacle-coloured pixels in ``image``."""
    detected = find_colors(image, range_min, range_max)
    map_size = (map_height, map_width)
    intrinsics, rotation, position = map_camera_properties(map_resolution, map_size)
    homography = compute_homography(
        camera_intrinsics, base_to_camera, intrinsics, rotation, position
    )
    projected = reproject_to_ground_plane(detected, homography, map_size)
    projected = np.flipud(np.rot90(projected, k=-1))
    return OccupancyGrid(
        width=int(map_width),
        height=int(map_height),
        resolution=1.0 / map_resolution,
        origin_x=0.0,
        origin_y=-map_height / (2.0 * map_resolution),
        data=[occupancy_value(int(v)) for v in projected.ravel()],
    )