"""ShaderLoop - Live GLSL Shader Preview"""

__version__ = '1.0.0'
