import re

from setuptools import setup, find_packages


def _read_version():
  with open('asyncchunks/__init__.py', 'r') as f:
    return re.search(r"^__version__ = '([^']+)'", f.read(), re.M).group(1)


if __name__ == '__main__':
  with open('README.md', 'r') as f:
    long_description = f.read()

  setup(
    name='asyncchunks',
    version=_read_version(),
    description='Process iterables in chunks on a bounded worker pool, lazily and with per chunk timeouts',
    long_description=long_description,
    long_description_content_type='text/markdown',

    license='MIT',

    python_requires='>=3.9',

    classifiers=[
      'Development Status :: 3 - Alpha',

      'Intended Audience :: Developers',
      'Operating System :: POSIX :: Linux',
      'Topic :: Software Development :: Libraries',

      'License :: OSI Approved :: MIT License',

      'Programming Language :: Python :: 3',
      'Programming Language :: Python :: 3.9',
      'Programming Language :: Python :: 3.10',
    ],

    packages=find_packages(exclude=['tests']),
    entry_points={
      'console_scripts': ['asyncchunks = asyncchunks:main']
    },
    install_requires=[
      'tqdm'
    ],
    extras_require={
      'test': ['pytest']
    }
  )
