import sys
from setuptools import setup

python_version = sys.version_info
__version__ = "1.0.0"

# Read dependencies from requirements.in
with open('requirements.in', 'r') as f:
    install_reqs = f.readlines()
    # Remove comments and pip options (e.g. '--no-binary')
    install_reqs = [s.strip().split('#')[0].split('--')[0] for s in install_reqs]
    install_reqs = [s.strip() for s in install_reqs if len(s.strip())]

readme = open('README.rst').read()
history = open('HISTORY.rst').read().replace('.. :changelog:', '')

setup(
    name='SeisXcorrelation',
    version=__version__,
    description='First- and third-order cross-correlation of ambient seismic '
                'noise recorded at station networks',
    long_description=readme + '\n\n' + history,
    author='Passive Seismic Team',
    author_email='',
    packages=['seisxcorrelation',
              'seisxcorrelation.xcorqc'],
    include_package_data=True,
    entry_points={
        'console_scripts': [
            'seisxcorr = seisxcorrelation.xcorqc.correlator:cli',
        ]
    },
    # numpy preinstall required due to obspy
    # mpi4py  preinstall required due to h5py
    setup_requires=[
        'numpy',
        'mpi4py',
        'setuptools>=36.2.1'
    ],
    install_requires=install_reqs,
    extras_require={
        'dev': [
            'pytest>=3.1.0',
            'pytest-cov',
            'pytest-mock>=1.6.0',
        ],
        'fftw': [
            'pyfftw',
        ]
    },
    license="GNU GENERAL PUBLIC LICENSE v3",
    zip_safe=False,
    keywords='Passive Seismic Ambient Noise Cross-correlation',
    classifiers=[
        'Development Status :: 4 - Beta',
        "Operating System :: POSIX",
        "Natural Language :: English",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Intended Audience :: Science/Research",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Scientific/Engineering :: Physics"
    ],
)
