# setup.py
from setuptools import setup, find_packages
from pathlib import Path
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="ocrbatch",
    version="1.0.0",
    package_dir={"": "src"},
    packages=find_packages(where="src", include=["ocrbatch", "ocrbatch.*"]),
    description="Batch OCR of scanned images and multi-page PDFs into plain-text files.",
    long_description=long_description,
    long_description_content_type='text/markdown',
    python_requires=">=3.8",

    install_requires=[
        "easyocr",
        "torch",
        "pytesseract",
        "PyMuPDF",
        "tqdm",
        "Pillow",
        "numpy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'ocrbatch=ocrbatch.cli:main',
        ],
    },
)
