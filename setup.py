from setuptools import setup, find_packages

setup(
    name="agency-site",
    version="0.1.0",
    packages=find_packages(),
    install_requires=[
        "fastapi",
        "starlette",
        "pydantic>=2",
        "uvicorn",
        "openai",
        "python-dotenv",
        "redis",
        "requests",
        "websockets",
    ],
    extras_require={
        "test": ["pytest", "pytest-cov", "httpx"],
    },
    entry_points={
        "console_scripts": [
            "agency-site=agency_site.web:main"
        ],
    },
    description="Rate-limited LLM chat, CMS webhooks and real-time collaboration for the agency site.",
    python_requires=">=3.9",
)
