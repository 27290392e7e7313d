[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "embd"
version = "0.1.0"
description = "Hardware abstraction layer for embedded Linux boards: host detection, sysfs GPIO and LEDs, I2C, SPI and common device drivers"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "embedded",
    "gpio",
    "i2c",
    "spi",
    "sysfs",
    "raspberry-pi",
    "beaglebone",
    "hd44780",
    "pca9685",
    "mcp4725",
    "mcp3008",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Hardware",
    "Topic :: Software Development :: Embedded Systems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
embd = "embd.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["embd"]

[tool.hatch.build.targets.sdist]
include = ["embd", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
