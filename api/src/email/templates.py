"""Email templates for LearnPath.

Every ``render_*`` function returns ``(html, plain_text)``. HTML bodies are
wrapped in ``BASE_TEMPLATE``; user-supplied text is escaped before it is
placed into HTML.
"""

from datetime import datetime
from html import escape


# ==============================================================================
# Base Template
# ==============================================================================

BASE_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title} - LearnPath</title>
</head>
<body style="margin: 0; padding: 0; background-color: #F7F8FA; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;">
  <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background-color: #F7F8FA;">
    <tr>
      <td align="center" style="padding: 40px 20px;">
        <table role="presentation" width="600" cellpadding="0" cellspacing="0" style="background-color: #FFFFFF; border-radius: 12px; max-width: 600px;">
          <tr>
            <td style="padding: 28px 40px 20px; text-align: center; border-bottom: 1px solid #E5E7EB;">
              <h1 style="margin: 0; font-size: 26px; font-weight: 700; color: #1E4FA8;">LearnPath</h1>
            </td>
          </tr>
          <tr>
            <td style="padding: 36px 40px;">
              {content}
            </td>
          </tr>
          <tr>
            <td style="padding: 20px 40px; background-color: #F9FAFB; border-top: 1px solid #E5E7EB; border-radius: 0 0 12px 12px;">
              <p style="margin: 0; font-size: 12px; color: #8E959E; text-align: center;">
                &copy; {year} LearnPath. This message was sent automatically, please do not reply.
              </p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""

BUTTON = """
<p style="text-align: center; margin: 28px 0;">
  <a href="{url}" style="display: inline-block; background-color: #1E4FA8; color: #FFFFFF; padding: 12px 24px; border-radius: 6px; text-decoration: none; font-weight: 600;">{label}</a>
</p>
"""

FOOTER_TEXT = "---\n© {year} LearnPath. This message was sent automatically."


def _wrap(title: str, content: str) -> str:
    return BASE_TEMPLATE.format(title=title, content=content, year=datetime.now().year)


def _footer() -> str:
    return FOOTER_TEXT.format(year=datetime.now().year)


# ==============================================================================
# Template: Essay submitted (to instructor)
# ==============================================================================

ESSAY_SUBMITTED_CONTENT = """
<h2 style="margin: 0 0 16px; font-size: 22px; color: #1A1D23;">Essay Awaiting Review</h2>
<p style="margin: 0 0 16px; font-size: 16px; color: #4B5563; line-height: 1.6;">
  Hello, <strong>{instructor_name}</strong>!<br><br>
  <strong>{student_name}</strong> submitted the final assessment of
  <strong>{module_title}</strong>. It contains essay questions and needs your grading.
</p>
{button}
"""


def render_essay_submitted(
    instructor_name: str,
    student_name: str,
    module_title: str,
    review_url: str,
) -> tuple[str, str]:
    """Render the grading request sent to each assigned instructor."""
    content = ESSAY_SUBMITTED_CONTENT.format(
        instructor_name=escape(instructor_name),
        student_name=escape(student_name),
        module_title=escape(module_title),
        button=BUTTON.format(url=review_url, label="Review submission"),
    )
    plain_text = f"""
Essay Awaiting Review - LearnPath

Hello, {instructor_name}!

{student_name} submitted the final assessment of "{module_title}".
It contains essay questions and needs your grading.

Review it here: {review_url}

{_footer()}
"""
    return _wrap("Essay Awaiting Review", content), plain_text.strip()


# ==============================================================================
# Template: Essay graded (to student)
# ==============================================================================

ESSAY_GRADED_CONTENT = """
<h2 style="margin: 0 0 16px; font-size: 22px; color: #1A1D23;">{heading}</h2>
<p style="margin: 0 0 16px; font-size: 16px; color: #4B5563; line-height: 1.6;">
  Hello, <strong>{student_name}</strong>!<br><br>
  Your final assessment for <strong>{module_title}</strong> has been graded.
  Score: <strong>{score}%</strong>.
</p>
<div style="background-color: {box_color}; border-left: 4px solid {border_color}; padding: 12px 16px; margin: 20px 0;">
  <p style="margin: 0; font-size: 15px; color: #1A1D23;">{outcome}</p>
</div>
{feedback_block}
{button}
"""

FEEDBACK_BLOCK = """
<p style="margin: 0 0 8px; font-size: 14px; color: #6B7280;">Instructor feedback:</p>
<blockquote style="margin: 0 0 16px; padding: 12px 16px; background-color: #F3F4F6; border-radius: 6px; font-size: 15px; color: #374151;">{feedback}</blockquote>
"""


def render_essay_graded(
    student_name: str,
    module_title: str,
    passed: bool,
    score: int,
    feedback: str | None,
    repeat_required: bool,
    module_url: str,
    certificate_url: str | None = None,
) -> tuple[str, str]:
    """Render the grading result sent to the student."""
    if passed:
        heading = "You Passed!"
        outcome = "Congratulations! You passed the final assessment and earned your certificate."
        box_color, border_color = "#F0FDF4", "#16A34A"
    elif repeat_required:
        heading = "Module Repeat Required"
        outcome = (
            "You have used all attempts. Please review and complete the module "
            "lessons again before reattempting the final assessment."
        )
        box_color, border_color = "#FEF2F2", "#DC2626"
    else:
        heading = "Assessment Reviewed"
        outcome = "You did not pass this time. You may attempt the assessment again."
        box_color, border_color = "#FEF3C7", "#F59E0B"

    if certificate_url:
        button = BUTTON.format(url=certificate_url, label="View certificate")
        link_text = f"View your certificate: {certificate_url}"
    else:
        button = BUTTON.format(url=module_url, label="Open module")
        link_text = f"Open the module: {module_url}"

    content = ESSAY_GRADED_CONTENT.format(
        heading=heading,
        student_name=escape(student_name),
        module_title=escape(module_title),
        score=score,
        box_color=box_color,
        border_color=border_color,
        outcome=outcome,
        feedback_block=FEEDBACK_BLOCK.format(feedback=escape(feedback)) if feedback else "",
        button=button,
    )
    feedback_text = f"\nInstructor feedback:\n{feedback}\n" if feedback else ""
    plain_text = f"""
{heading} - LearnPath

Hello, {student_name}!

Your final assessment for "{module_title}" has been graded. Score: {score}%.

{outcome}
{feedback_text}
{link_text}

{_footer()}
"""
    return _wrap(heading, content), plain_text.strip()


# ==============================================================================
# Template: Module submitted (to admins)
# ==============================================================================

MODULE_SUBMITTED_CONTENT = """
<h2 style="margin: 0 0 16px; font-size: 22px; color: #1A1D23;">Module Submitted for Review</h2>
<p style="margin: 0 0 16px; font-size: 16px; color: #4B5563; line-height: 1.6;">
  <strong>{submitted_by}</strong> submitted the module <strong>{module_title}</strong>
  for approval.
</p>
{button}
"""


def render_module_submitted(
    module_title: str,
    submitted_by: str,
    review_url: str,
) -> tuple[str, str]:
    content = MODULE_SUBMITTED_CONTENT.format(
        module_title=escape(module_title),
        submitted_by=escape(submitted_by),
        button=BUTTON.format(url=review_url, label="Review module"),
    )
    plain_text = f"""
Module Submitted for Review - LearnPath

{submitted_by} submitted the module "{module_title}" for approval.

Review it here: {review_url}

{_footer()}
"""
    return _wrap("Module Submitted for Review", content), plain_text.strip()


# ==============================================================================
# Template: Certificate earned (to student)
# ==============================================================================

CERTIFICATE_CONTENT = """
<h2 style="margin: 0 0 16px; font-size: 22px; color: #1A1D23;">Certificate Earned!</h2>
<p style="margin: 0 0 16px; font-size: 16px; color: #4B5563; line-height: 1.6;">
  Congratulations, <strong>{student_name}</strong>!<br><br>
  You passed <strong>{module_title}</strong> and earned your certificate.
</p>
<div style="background-color: #EFF6FF; border-radius: 12px; padding: 20px; text-align: center; margin: 20px 0;">
  <p style="margin: 0 0 6px; font-size: 13px; color: #1E4FA8;">Certificate number</p>
  <p style="margin: 0; font-size: 20px; font-weight: 700; color: #1A1D23; font-family: 'Courier New', Courier, monospace;">{certificate_number}</p>
</div>
{button}
"""


def render_certificate_earned(
    student_name: str,
    module_title: str,
    certificate_number: str,
    verify_url: str,
) -> tuple[str, str]:
    content = CERTIFICATE_CONTENT.format(
        student_name=escape(student_name),
        module_title=escape(module_title),
        certificate_number=escape(certificate_number),
        button=BUTTON.format(url=verify_url, label="View certificate"),
    )
    plain_text = f"""
Certificate Earned! - LearnPath

Congratulations, {student_name}!

You passed "{module_title}" and earned your certificate.

Certificate number: {certificate_number}
Verify it here: {verify_url}

{_footer()}
"""
    return _wrap("Certificate Earned", content), plain_text.strip()
