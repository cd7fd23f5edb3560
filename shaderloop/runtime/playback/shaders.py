"""
Built-in GLSL programs.

Fragment programs (user code included) receive the quad position as
`in vec2 st`, ranging over 0..1 across the render target.
"""

QUAD_VERTEX_SHADER = """
#version 330 core
in vec2 corners;
out vec2 st;
void main()
{
    gl_Position = vec4(corners, 0.0, 1.0);
    st = corners * 0.5 + 0.5;
}
"""

BLIT_FRAGMENT_SHADER = """
#version 330 core
in vec2 st;
out vec4 color;
uniform sampler2D image;
void main()
{
    color = texture(image, st);
}
"""

# Shown whenever the current source cannot be loaded
ERROR_FRAGMENT_SHADER = """
#version 330 core
in vec2 st;
out vec4 color;
uniform float time;
void main()
{
    color = vec4
    (
        cos(st.x * 20.0 + time) +
        sin(st.y * 20.0 + time),
        0.0, 0.5, 1.0
    );
}
"""
