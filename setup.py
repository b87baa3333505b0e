import os

from setuptools import setup

about = {}
with open(os.path.join('symminres', '__about__.py')) as f:
    exec(f.read(), about)


setup(name='symminres',
      packages=['symminres'],
      version=about['__version__'],
      description='Preconditioned MINRES for symmetric indefinite linear '
                  'systems',
      long_description=open('README.md').read(),
      long_description_content_type="text/markdown",
      install_requires=['numpy (>=1.20)', 'scipy (>=1.8)'],
      extras_require={'test': ['pytest']},
      python_requires=">=3.8",
      classifiers=[
          'Development Status :: 4 - Beta',
          'Intended Audience :: Science/Research',
          'License :: OSI Approved :: MIT License',
          'Operating System :: OS Independent',
          'Programming Language :: Python',
          'Programming Language :: Python :: 3',
          'Topic :: Scientific/Engineering :: Mathematics'
          ],
      )
