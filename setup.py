import setuptools

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()


install_requires = [
    "discord.py>=2.3",
    "aiohttp>=3.8",
    "pydantic>=2.0",
    "pydantic-settings",
]

setuptools.setup(
    name="palcontrol",
    version="0.1.0",
    description="Un bot de Discord para iniciar, detener y apagar por inactividad un servidor de Palworld.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=["palcontrol", "palcontrol.server", "palcontrol.discord_bot"],
    package_data={"palcontrol.discord_bot": ["locales/*.json"]},
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Topic :: Games/Entertainment",
        "Framework :: AsyncIO",
    ],
    python_requires=">=3.10.0",
    install_requires=install_requires,
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "palcontrol=palcontrol.cli:run",
        ],
    },
)
