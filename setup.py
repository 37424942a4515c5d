from setuptools import setup, find_packages

setup(
    name="ecg_stream",
    version="0.1.0",
    description="Real-time single-lead ECG heart rate, HRV and QRS width over WebSocket",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main"],
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
        "scipy>=1.10",
        "fastapi>=0.110",
        "uvicorn[standard]>=0.27",
        "pydantic>=2.5",
    ],
    extras_require={
        "dev": ["pytest>=7.4", "httpx>=0.25"],
    },
    entry_points={
        "console_scripts": [
            "ecg-stream=main:main",
        ]
    },
)
