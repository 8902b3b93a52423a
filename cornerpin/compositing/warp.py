"""
Corner-pin rendering via inverse warping and bilinear sampling.

Given a homography that maps frame coordinates onto the photo, every
destination pixel inside the pinned quad is mapped back through H^-1 and
the frame is sampled there with bilinear interpolation.  The warped frame
is then alpha-composited over the background.
"""

import numpy as np
from skimage.draw import polygon

from cornerpin.geometry.errors import InvalidArgumentError
from cornerpin.geometry.homography import (
    apply_homography_many,
    as_points,
    compute_homography,
    invert_homography,
)
from cornerpin.geometry.linalg import EPS
from cornerpin.geometry.quad import frame_corners


def _channels_last(image) -> np.ndarray:
    img = np.asarray(image)
    if img.ndim == 2:
        img = img[:, :, np.newaxis]
    if img.ndim != 3 or img.shape[0] == 0 or img.shape[1] == 0:
        raise InvalidArgumentError(f"expected an H x W (x C) image, got {img.shape}")
    return img


def sample_many(image, xs, ys) -> np.ndarray:
    """Bilinearly sample *image* at arrays of real positions.

    Positions are clamped into ``[0, width-1] x [0, height-1]``; each
    channel is interpolated along x, then along y, and rounded half up.

    Parameters
    ----------
    image : np.ndarray
        H x W x C (or H x W) image.
    xs, ys : array_like
        Sample positions, broadcastable to a common shape S.

    Returns
    -------
    np.ndarray
        Integer array of shape ``S + (C,)``.
    """
    img = _channels_last(image)
    h, w = img.shape[:2]

    xs, ys = np.broadcast_arrays(np.asarray(xs, dtype=float),
                                 np.asarray(ys, dtype=float))
    xs = np.clip(xs, 0, w - 1)
    ys = np.clip(ys, 0, h - 1)

    x1 = np.floor(xs).astype(int)
    y1 = np.floor(ys).astype(int)
    x2 = np.minimum(x1 + 1, w - 1)
    y2 = np.minimum(y1 + 1, h - 1)

    dx = (xs - x1)[..., np.newaxis]
    dy = (ys - y1)[..., np.newaxis]

    tl = img[y1, x1].astype(float)
    tr = img[y1, x2].astype(float)
    bl = img[y2, x1].astype(float)
    br = img[y2, x2].astype(float)

    top = tl * (1 - dx) + tr * dx
    bottom = bl * (1 - dx) + br * dx
    return np.floor(top * (1 - dy) + bottom * dy + 0.5).astype(int)


def bilinear_sample(image, x: float, y: float) -> tuple:
    """Sample one pixel of *image* at real position (*x*, *y*).

    At integer coordinates the source pixel is returned exactly.

    Returns
    -------
    tuple of int
        One value per channel (R, G, B, A for an RGBA image).
    """
    values = sample_many(image, [x], [y])[0]
    return tuple(int(v) for v in values)


def warp_into_quad(frame, H, output_shape, corners=None, eps: float = EPS):
    """Inverse-warp *frame* into a canvas of *output_shape*.

    Destination pixels are addressed at integer lattice coordinates
    ``(col, row)``, the same convention as :func:`bilinear_sample`, so an
    identity homography copies the frame pixel for pixel.

    Parameters
    ----------
    frame : np.ndarray
        H x W x C source frame.
    H : np.ndarray
        3 x 3 homography mapping frame coordinates to output coordinates.
    output_shape : tuple of (int, int)
        (height, width) of the destination canvas.
    corners : array_like, optional
        4 x 2 destination quad.  When given, only pixels inside it are
        rendered.
    eps : float
        Tolerance for the matrix inversion and projective guard.

    Returns
    -------
    warped : np.ndarray
        Output-sized image with the frame's dtype and channel count.
    mask : np.ndarray
        Boolean H x W array of the pixels that were written.
    """
    img = _channels_last(frame)
    frame_h, frame_w = img.shape[:2]
    out_h, out_w = int(output_shape[0]), int(output_shape[1])

    warped = np.zeros((out_h, out_w, img.shape[2]), dtype=img.dtype)
    mask = np.zeros((out_h, out_w), dtype=bool)

    H_inv = invert_homography(H, eps=eps)

    if corners is not None:
        quad = as_points(corners, "corners")
        rows, cols = polygon(quad[:, 1], quad[:, 0], shape=(out_h, out_w))
    else:
        rows, cols = np.indices((out_h, out_w)).reshape(2, -1)

    if len(rows) == 0:
        return warped, mask

    dest = np.column_stack([cols, rows]).astype(float)
    src = apply_homography_many(dest, H_inv, eps=eps)
    src_x, src_y = src[:, 0], src[:, 1]

    inside = (src_x >= 0) & (src_x <= frame_w) & (src_y >= 0) & (src_y <= frame_h)
    rows, cols = rows[inside], cols[inside]

    samples = sample_many(img, src_x[inside], src_y[inside])
    warped[rows, cols] = samples.astype(img.dtype)
    mask[rows, cols] = True
    return warped, mask


def _to_rgba(image) -> np.ndarray:
    img = _channels_last(image)
    if img.shape[2] == 4:
        return img.astype(np.uint8)
    if img.shape[2] == 1:
        img = np.repeat(img, 3, axis=2)
    if img.shape[2] != 3:
        raise InvalidArgumentError(f"unsupported channel count {img.shape[2]}")
    alpha = np.full(img.shape[:2] + (1,), 255, dtype=np.uint8)
    return np.concatenate([img.astype(np.uint8), alpha], axis=2)


def composite(background, frame, corners, H=None, opacity: float = 1.0,
              eps: float = EPS) -> np.ndarray:
    """Pin *frame* into the quad *corners* on *background*.

    Parameters
    ----------
    background : np.ndarray
        H x W x 3 or H x W x 4 uint8 photo.
    frame : np.ndarray
        Overlay frame (same channel conventions).
    corners : array_like
        4 x 2 destination quad in background pixels, TL, TR, BR, BL.
    H : np.ndarray, optional
        Frame-to-background homography.  Computed from the frame rectangle
        when omitted.
    opacity : float
        Global overlay opacity in [0, 1], multiplied with the frame alpha.

    Returns
    -------
    np.ndarray
        H x W x 4 uint8 composite.
    """
    bg = _to_rgba(background)
    fr = _to_rgba(frame)
    opacity = float(np.clip(opacity, 0.0, 1.0))

    if H is None:
        frame_h, frame_w = fr.shape[:2]
        H = compute_homography(frame_corners(frame_w, frame_h), corners, eps=eps)

    print("  Warping overlay into corner pin...")
    warped, mask = warp_into_quad(fr, H, bg.shape[:2], corners=corners, eps=eps)
    print(f"    {int(mask.sum())} px covered")

    print("  Blending over background...")
    alpha = warped[:, :, 3].astype(np.float32) / 255.0 * opacity * mask
    alpha = alpha[:, :, np.newaxis]

    out = bg.astype(np.float32)
    out[:, :, :3] = out[:, :, :3] * (1 - alpha) + warped[:, :, :3] * alpha
    out[:, :, 3:] = alpha * 255.0 + out[:, :, 3:] * (1 - alpha)

    return np.clip(np.rint(out), 0, 255).astype(np.uint8)
