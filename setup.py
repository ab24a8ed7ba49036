#!/usr/bin/env python
"""Setuptools distribution file."""
import os
from setuptools import setup


def _get_here(fname):
    return os.path.join(os.path.dirname(__file__), fname)


def _get_long_description(fname, encoding='utf8'):
    return open(fname, 'r', encoding=encoding).read()


setup(name='serverline',
      version='1.0.0',
      license='ISC',
      description="Asyncio line editing prompt that keeps program output "
                  "from corrupting the input line",
      long_description=_get_long_description(fname=_get_here('README.rst')),
      packages=['serverline'],
      package_data={'': ['README.rst'], },
      python_requires='>=3.8',
      install_requires=[
          'prompt_toolkit>=3.0',
          'wcwidth>=0.3',
      ],
      extras_require={
          'test': ['pytest', 'pytest-asyncio'],
      },
      entry_points={
         'console_scripts': [
             'serverline-demo = serverline.demo:main',
         ]},
      platforms='posix',
      zip_safe=True,
      keywords=', '.join(('readline', 'prompt', 'terminal', 'cli',
                          'asyncio', 'completion', 'password', 'console')),
      classifiers=['License :: OSI Approved :: ISC License (ISCL)',
                   'Programming Language :: Python :: 3',
                   'Intended Audience :: Developers',
                   'Development Status :: 4 - Beta',
                   'Environment :: Console',
                   'Topic :: Terminals',
                   'Topic :: System :: Shells',
                   ],
      )
