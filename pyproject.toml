[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gbatools"
version = "1.0.0"
description = "Game Boy Advance ROM header fixer and graphics, palette, font and compression converter"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "gba",
    "game boy advance",
    "rom",
    "tiles",
    "palette",
    "lz77",
    "huffman",
    "run-length",
    "png",
]
classifiers = [
    "Development Status :: 5 - Production/Stable",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
    "Topic :: Software Development :: Build Tools",
    "Topic :: System :: Archiving :: Compression",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
gbafix = "gbatools.gbafix:main"
gbagfx = "gbatools.gbagfx:main"

[tool.hatch.build.targets.wheel]
packages = ["gbatools"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
