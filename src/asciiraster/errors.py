class RasterError(ValueError):
    """Base class for the few inputs the engine refuses instead of clamping."""


class PaletteError(RasterError):
    pass


class BufferSizeError(RasterError):
    pass
