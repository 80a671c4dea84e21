from setuptools import setup, find_packages

setup(
    name='gasworks',
    version='0.3.0',
    license="MIT",
    author="Clinton Freeman",
    description="Gasworks: networked neurones that turn movement into light",
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "click",
        "fastapi",
        "httpx",
        "numpy",
        "opencv-python-headless",
        "pyserial",
        "PyYAML",
        "uvicorn",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        'console_scripts': [
            'gasworks-neurone=gasworks.command.gasworks_neurone:run',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires='>=3.10',
)
