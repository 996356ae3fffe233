from setuptools import setup, find_packages

setup(
    name="therabot",
    version="0.1.0",
    description="Keyboard and voice client for a remote therapy chatbot",
    author="",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "aiohttp>=3.8.0",
        "pyyaml>=6.0.0",
        "pypubsub>=4.0.3",
        "rich>=12.5.0",
        "pyaudio>=0.2.11",
        "numpy>=1.21.0",
        "google-cloud-speech>=2.16.0",
        "google-auth>=2.10.0",
        "pyttsx3>=2.90",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "therabot=therabot.main:main",
        ],
    },
)
