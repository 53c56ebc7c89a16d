from setuptools import setup, find_packages
import os

# Read the contents of README file
this_directory = os.path.abspath(os.path.dirname(__file__))
try:
    with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
        long_description = f.read()
except FileNotFoundError:
    long_description = "Boiler - HEVC transcoding to a target bitrate by quality-value search"

setup(
    name="boiler-transcode",
    version="1.0.0",
    description="HEVC transcoding to a target bitrate by searching the encoder quality value",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["boiler", "boiler.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
        "Topic :: Multimedia :: Video :: Conversion",
    ],
    python_requires=">=3.9",
    install_requires=[
        "tqdm>=4.0.0",
    ],
    extras_require={
        "dev": [
            "pytest",
            "black",
            "flake8",
        ],
    },
    entry_points={
        "console_scripts": [
            "boiler=boiler.cli:main_boiler",
            "boiler-remux=boiler.cli:main_remux",
            "boiler-cleanup=boiler.cli:main_cleanup",
            "boiler-remux-audio=boiler.cli:main_remux_audio",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
