HOLE_SHAPE_BOX = "box"
HOLE_SHAPE_CIRCLE = "circle"
HOLE_SHAPE_TRIANGLE = "triangle"
HOLE_SHAPE_TRAPEZIUM = "trapezium"
HOLE_SHAPE_OPTIONS = (HOLE_SHAPE_BOX, HOLE_SHAPE_CIRCLE, HOLE_SHAPE_TRIANGLE, HOLE_SHAPE_TRAPEZIUM)
# 旧模板里的矩形写法
HOLE_SHAPE_ALIASES = {"rectangle": HOLE_SHAPE_BOX, "rect": HOLE_SHAPE_BOX, "square": HOLE_SHAPE_BOX}

TEXT_TRANSFORM_NONE = "none"
TEXT_TRANSFORM_UPPERCASE = "uppercase"
TEXT_TRANSFORM_LOWERCASE = "lowercase"
TEXT_TRANSFORM_CAPITALIZE = "capitalize"
TEXT_TRANSFORM_OPTIONS = (
    TEXT_TRANSFORM_NONE,
    TEXT_TRANSFORM_UPPERCASE,
    TEXT_TRANSFORM_LOWERCASE,
    TEXT_TRANSFORM_CAPITALIZE,
)

ALIGN_OPTIONS_HORIZONTAL = ("left", "center", "right")

FONT_STYLE_NORMAL = "normal"
FONT_STYLE_BOLD = "bold"
FONT_STYLE_ITALIC = "italic"
FONT_STYLE_BOLD_ITALIC = "italic bold"
FONT_STYLE_OPTIONS = (FONT_STYLE_NORMAL, FONT_STYLE_BOLD, FONT_STYLE_ITALIC, FONT_STYLE_BOLD_ITALIC)
FONT_STYLE_ALIASES = {"bold italic": FONT_STYLE_BOLD_ITALIC, "bold_italic": FONT_STYLE_BOLD_ITALIC}

SCALE_POLICY_FIT_WIDTH = "fit_width"
SCALE_POLICY_FIT_WIDTH_CAPPED = "fit_width_capped"
SCALE_POLICY_OPTIONS = (SCALE_POLICY_FIT_WIDTH, SCALE_POLICY_FIT_WIDTH_CAPPED)

RENDER_MODE_FILL = "fill"
RENDER_MODE_EDIT = "edit"

PLACEHOLDER_KIND_IMAGE = "image"
PLACEHOLDER_KIND_TEXT = "text"

RESIZE_HANDLES = ("nw", "n", "ne", "e", "se", "s", "sw", "w")

MIN_DISPLAY_SIZE = 20
MIN_FONT_SIZE = 8
TRAPEZIUM_INSET_RATIO = 0.2

DEFAULT_FONT_FAMILY = "Open Sans"
DEFAULT_FONT_SIZE = 24
DEFAULT_FONT_WEIGHT = "normal"
DEFAULT_TEXT_COLOR = "#000000"
DEFAULT_TEXT_ALIGN = "center"
DEFAULT_SAMPLE_TEXT = "Sample Text"

# 新建占位符的显示尺寸（显示像素，写入前除以 scale）
DEFAULT_IMAGE_DISPLAY_SIZE = (100, 100)
DEFAULT_TEXT_DISPLAY_SIZE = (200, 50)

HEIF_EXTENSIONS = {".heic", ".heif", ".hif"}
