from dataclasses import dataclass

from cutout_utils.config import UPLOAD_IMAGE_SIZE, TARGET_SIZE, MAX_EDGE


@dataclass(frozen=True)
class ScaleParameters:
    upload_scale: float
    scale: float
    onnx_scale: float
    mask_width: float
    mask_height: float
    width: int
    height: int

    def as_dict(self):
        return {
            "uploadScale": self.upload_scale,
            "scale": self.scale,
            "onnxScale": self.onnx_scale,
            "maskWidth": self.mask_width,
            "maskHeight": self.mask_height,
            "width": self.width,
            "height": self.height,
        }


def _check_dims(width, height):
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image dimensions: {width}x{height}")


def resolve_scale(width, height) -> ScaleParameters:
    """
    Scale factors between the original image, the upload-resized image
    and the decoder's working resolution.
    """
    _check_dims(width, height)

    upload_scale = UPLOAD_IMAGE_SIZE / max(width, height)

    d = min(width, height)
    scale = TARGET_SIZE / d
    if scale * d > MAX_EDGE:
        scale = MAX_EDGE / d

    return ScaleParameters(
        upload_scale=upload_scale,
        scale=scale,
        onnx_scale=scale / upload_scale,
        mask_width=width * upload_scale,
        mask_height=height * upload_scale,
        width=width,
        height=height,
    )


def upload_size(width, height):
    _check_dims(width, height)
    s = UPLOAD_IMAGE_SIZE / max(width, height)
    return max(1, int(round(width * s))), max(1, int(round(height * s)))


def display_scale(width, height):
    # mask grid units -> original image pixels
    _check_dims(width, height)
    return max(width, height) / UPLOAD_IMAGE_SIZE
