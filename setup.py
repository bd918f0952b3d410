from setuptools import setup, find_packages

setup(
    name="youtube_summarizer",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "aiohttp>=3.9.0",
        "colorlog>=6.7.0",
        "python-dotenv>=1.0.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "youtube-summarizer=youtube_summarizer.main:main",
        ],
    },
    python_requires=">=3.8",
    description="YouTube transcript and metadata acquisition for video summarization",
    author="Venkatesh Murugadas",
    url="https://github.com/VenkateshDas/youtube_analysis",
)
