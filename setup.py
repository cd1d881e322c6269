from setuptools import setup
import os

README_PATH = os.path.join(os.path.abspath(os.path.dirname(__file__)), 'README.md')
with open(README_PATH) as readme_file:
    README = readme_file.read()

setup(
    name='pytspanneal',
    version='1.0.0',
    description='Simulated annealing for the travelling salesman problem over a blend of normalized distance and price',
    long_description=README,
    long_description_content_type='text/markdown',
    license="LGPL-3.0-or-later",
    classifiers=[
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering",
    ],
    packages=['pytspanneal'],
    python_requires='>=3.10',
    install_requires=['numpy', 'numba', 'networkx', 'scipy'],
    extras_require={'test': ['pytest']},
    zip_safe=False,
)
