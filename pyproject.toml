[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinypcm"
version = "0.1.0"
description = "PCM stream, mixer control and RIFF/WAVE tooling: option parsing, stream settings, WAV headers and level analysis"
requires-python = ">=3.10"
dependencies = []
keywords = ["audio", "pcm", "wav", "wave", "mixer", "sound"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio",
    "Topic :: Multimedia :: Sound/Audio :: Analysis",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tinywavinfo = "tinypcm.wav:main"

[tool.hatch.build.targets.wheel]
packages = ["tinypcm"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
